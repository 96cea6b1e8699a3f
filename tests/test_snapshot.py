"""Tests for the snapshot format."""

import json

import pytest


@pytest.fixture
def populated(store, clock):
    """Store with stopped, backfilled and paused tasks across two projects."""
    from busy_core import add, pause, start, stop

    add(store, "work", "Planning", ["+meeting"], clock(-120), clock(-60))
    start(store, "home", "Taxes", ["paperwork", "boring"], now=clock(0))
    stop(store, now=clock(30))
    start(store, "work", "Report", [], now=clock(40))
    pause(store, now=clock(55))
    return store


def test_encode_is_deterministic(populated):
    """Saving unchanged state twice gives identical bytes."""
    from busy_core import encode_snapshot

    assert encode_snapshot(populated.snapshot()) == encode_snapshot(populated.snapshot())


def test_round_trip_reproduces_store(populated):
    """Decode(encode(s)) should equal s, and re-encode byte for byte."""
    from busy_core import Store, decode_snapshot, encode_snapshot

    snapshot = populated.snapshot()
    text = encode_snapshot(snapshot)
    decoded = decode_snapshot(text)

    assert decoded == snapshot
    assert encode_snapshot(decoded) == text
    assert Store(decoded).snapshot() == snapshot


def test_encoded_layout(populated, clock):
    """Keys sorted, timestamps ISO 8601 with offset, tag ids sorted."""
    from busy_core import encode_snapshot

    text = encode_snapshot(populated.snapshot())
    data = json.loads(text)

    assert list(data) == ["projects", "tags", "tasks", "version"]
    assert data["version"] == 1
    assert [p["name"] for p in data["projects"]] == ["home", "work"]
    assert [t["name"] for t in data["tags"]] == ["boring", "meeting", "paperwork"]
    assert [t["title"] for t in data["tasks"]] == ["Planning", "Taxes", "Report"]

    taxes = data["tasks"][1]
    assert taxes["start"] == "2024-01-15T09:00:00+02:00"
    assert taxes["stop"] == "2024-01-15T09:30:00+02:00"
    assert taxes["tag_ids"] == sorted(taxes["tag_ids"])
    assert list(taxes) == sorted(taxes)

    report = data["tasks"][2]
    assert report["state"] == "paused"
    assert report["stop"] is None
    assert report["paused_at"] == "2024-01-15T09:55:00+02:00"
    assert text.endswith("\n")


def test_snapshot_equality_ignores_insertion_order(populated):
    """Snapshots built in different orders should be equal."""
    from busy_core import Snapshot

    snapshot = populated.snapshot()
    reversed_copy = Snapshot(
        tasks=tuple(reversed(snapshot.tasks)),
        projects=tuple(reversed(snapshot.projects)),
        tags=tuple(reversed(snapshot.tags)),
    )

    assert reversed_copy == snapshot


def test_empty_snapshot_round_trips():
    """An empty snapshot should decode back to an empty snapshot."""
    from busy_core import Snapshot, decode_snapshot, encode_snapshot

    assert decode_snapshot(encode_snapshot(Snapshot())) == Snapshot()
    assert Snapshot().is_empty()


@pytest.mark.parametrize(
    "text",
    [
        "",
        "{not json",
        "[]",
        '{"version": 99, "projects": [], "tags": [], "tasks": []}',
        '{"version": 1, "projects": [], "tags": []}',
        '{"version": 1, "projects": [{"id": "nope", "name": "x"}], "tags": [], "tasks": []}',
        '{"version": 1, "projects": [{"id": "00000000-0000-4000-8000-000000000001", "name": ""}], "tags": [], "tasks": []}',
    ],
)
def test_decode_rejects_malformed_text(text):
    """Anything that isn't a complete snapshot raises CorruptionError."""
    from busy_core import CorruptionError, decode_snapshot

    with pytest.raises(CorruptionError):
        decode_snapshot(text)


def _mutate_first_task(populated, **changes):
    from busy_core import encode_snapshot

    data = json.loads(encode_snapshot(populated.snapshot()))
    data["tasks"][0].update(changes)
    return json.dumps(data)


def test_decode_rejects_stop_before_start(populated):
    """A task that stops before it starts should be corrupt."""
    from busy_core import CorruptionError, decode_snapshot

    text = _mutate_first_task(populated, stop="2000-01-01T00:00:00+00:00")

    with pytest.raises(CorruptionError, match="before start"):
        decode_snapshot(text)


def test_decode_rejects_second_current_task(populated):
    """Two current tasks in one snapshot should be corrupt."""
    from busy_core import CorruptionError, decode_snapshot

    text = _mutate_first_task(populated, state="active", stop=None)

    with pytest.raises(CorruptionError, match="current tasks"):
        decode_snapshot(text)


def test_decode_rejects_dangling_tag(populated):
    """A task referencing a missing tag should be corrupt."""
    from busy_core import CorruptionError, decode_snapshot

    text = _mutate_first_task(populated, tag_ids=["00000000-0000-4000-8000-000000000001"])

    with pytest.raises(CorruptionError, match="missing tag"):
        decode_snapshot(text)


@pytest.mark.parametrize("value", ["ten", float("nan"), float("inf"), 1e300, -5])
def test_decode_rejects_bad_paused_seconds(populated, value):
    """Should reject paused_seconds that is not a finite, non-negative duration."""
    from busy_core import CorruptionError, decode_snapshot

    text = _mutate_first_task(populated, paused_seconds=value)

    with pytest.raises(CorruptionError, match="paused_seconds"):
        decode_snapshot(text)


def test_find_problems_reports_duplicate_names(clock):
    """Duplicate project names should be reported for each project."""
    from busy_core import Project, Snapshot, find_problems, generate_id

    snapshot = Snapshot(
        projects=(Project(id=generate_id(), name="work"), Project(id=generate_id(), name="work"))
    )

    problems = find_problems(snapshot)

    assert len(problems) == 2
    assert all("name 'work'" in reason for _, _, reason in problems)
