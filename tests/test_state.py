"""Tests for tracked-item state persistence."""

import json
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from clade.config import Config
from clade.exceptions import StateError
from clade.state import (
    Experiment,
    Project,
    ProjectRepo,
    Scratch,
    State,
    experiment_key,
    get_state_path,
    load_state,
    save_state,
    touch,
)


@pytest.fixture
def config(tmp_path: Path) -> Config:
    return Config(base_dir=str(tmp_path / "clade"))


def test_experiment_key() -> None:
    """Keys combine the repo directory name and the experiment name."""
    assert experiment_key("/home/me/repos/backend", "try-redis") == "backend-try-redis"
    assert experiment_key(Path("/home/me/repos/backend/"), "x") == "backend-x"


def test_experiment_key_is_deterministic() -> None:
    assert experiment_key("/a/repo", "n") == experiment_key("/a/repo", "n")
    assert experiment_key("/a/repo", "n") != experiment_key("/a/other", "n")


def test_load_state_missing_file(config: Config) -> None:
    """No state file yet means nothing is tracked."""
    state = load_state(config)
    assert state.is_empty()


def test_save_and_load_state(config: Config) -> None:
    """Every record type survives a save/load cycle."""
    state = State()
    key = state.add_experiment(
        Experiment(
            name="PROJ-1-auth",
            repo="/repos/backend",
            path="/clade/experiments/backend-PROJ-1-auth",
            branch="exp/PROJ-1-auth",
            ticket="PROJ-1",
        )
    )
    state.add_project(
        Project(
            name="checkout",
            path="/clade/projects/checkout",
            branch="feat/checkout",
            repos=[ProjectRepo("api", "/repos/api"), ProjectRepo("web", "/repos/web")],
        )
    )
    state.add_scratch(Scratch(name="notes", path="/clade/scratch/notes"))
    save_state(state, config)

    loaded = load_state(config)
    assert key == "backend-PROJ-1-auth"
    assert loaded.get_experiment(key).ticket == "PROJ-1"
    assert loaded.get_experiment(key).kind == "experiment"
    assert [r.name for r in loaded.get_project("checkout").repos] == ["api", "web"]
    assert loaded.get_scratch("notes").path == "/clade/scratch/notes"


def test_state_file_layout(config: Config) -> None:
    """The file holds a version and one map per record type."""
    save_state(State(), config)

    data = json.loads(get_state_path(config).read_text())
    assert data == {"version": 1, "experiments": {}, "projects": {}, "scratches": {}}


def test_feature_kind_is_persisted(config: Config) -> None:
    state = State()
    key = state.add_experiment(
        Experiment(name="login", repo="/r/app", path="/p", branch="feat/login", kind="feature")
    )
    save_state(state, config)

    assert load_state(config).get_experiment(key).kind == "feature"


def test_load_state_corrupt_file(config: Config) -> None:
    """A state file that is not JSON is an error, not an empty state."""
    path = get_state_path(config)
    path.parent.mkdir(parents=True)
    path.write_text("{not json")

    with pytest.raises(StateError):
        load_state(config)


def test_load_state_null_maps(config: Config) -> None:
    """Null sections in a hand-edited file are treated as empty."""
    path = get_state_path(config)
    path.parent.mkdir(parents=True)
    path.write_text(json.dumps({"version": 1, "experiments": None, "projects": None}))

    assert load_state(config).is_empty()


def test_find_experiment_by_name() -> None:
    """Experiments are found by key first, then by bare name."""
    state = State()
    key = state.add_experiment(Experiment(name="spike", repo="/r/api", path="/p", branch="b"))

    assert state.find_experiment(key) == (key, state.experiments[key])
    assert state.find_experiment("spike") == (key, state.experiments[key])
    assert state.find_experiment("missing") is None


def test_remove_items() -> None:
    state = State()
    key = state.add_experiment(Experiment(name="e", repo="/r/x", path="/p", branch="b"))
    state.add_project(Project(name="p", path="/p", branch="b"))
    state.add_scratch(Scratch(name="s", path="/s"))

    state.remove_experiment(key)
    state.remove_project("p")
    state.remove_scratch("s")
    state.remove_scratch("never-there")

    assert state.is_empty()


def test_resumable_items_most_recent_first() -> None:
    """Items of every kind are ordered by last use."""
    now = datetime.now(UTC)
    state = State()
    state.add_experiment(
        Experiment(
            name="old", repo="/r/x", path="/p", branch="b", last_used=now - timedelta(days=3)
        )
    )
    state.add_scratch(Scratch(name="new", path="/s", last_used=now))
    state.add_project(Project(name="mid", path="/m", branch="b", last_used=now - timedelta(hours=1)))

    kinds = [(kind, item.name) for kind, _, item in state.resumable_items()]
    assert kinds == [("scratch", "new"), ("project", "mid"), ("exp", "old")]


def test_touch_updates_last_used() -> None:
    scratch = Scratch(name="s", path="/s", last_used=datetime(2020, 1, 1, tzinfo=UTC))
    touch(scratch)
    assert scratch.last_used.year > 2020


def test_timestamps_round_trip_timezone(config: Config) -> None:
    """Stored timestamps come back timezone-aware."""
    state = State()
    state.add_scratch(Scratch(name="s", path="/s"))
    save_state(state, config)

    loaded = load_state(config).get_scratch("s")
    assert loaded.last_used.tzinfo is not None
