"""Tests for short id resolution and name lookup."""

import uuid

import pytest


def _id(prefix: str) -> uuid.UUID:
    return uuid.UUID(hex=prefix.ljust(32, "0"))


def _projects(*prefixes):
    from busy_core import Project

    return [Project(id=_id(p), name=f"project-{p}") for p in prefixes]


def _index(*prefixes):
    from busy_core import Index

    index = Index()
    index.rebuild("project", _projects(*prefixes))
    return index


def test_resolve_ambiguous_prefix_lists_candidates():
    """A prefix shared by two ids must never be guessed."""
    from busy_core import AmbiguousError

    index = _index("a1b2", "a1c3")

    with pytest.raises(AmbiguousError) as exc_info:
        index.resolve("a1", "project")

    assert exc_info.value.candidates == sorted([str(_id("a1b2")), str(_id("a1c3"))])


def test_resolve_unique_prefix():
    """A longer prefix picks the single matching id."""
    index = _index("a1b2", "a1c3")

    assert index.resolve("a1b", "project") == _id("a1b2")


def test_resolve_accepts_full_and_hyphenated_ids():
    """resolve should accept the full id in either textual form."""
    index = _index("a1b2", "a1c3")
    full = _id("a1b2")

    assert index.resolve(str(full), "project") == full
    assert index.resolve(str(full).upper(), "project") == full


def test_resolve_unknown_prefix_raises_not_found():
    """A prefix matching nothing should raise NotFoundError."""
    from busy_core import NotFoundError

    with pytest.raises(NotFoundError):
        _index("a1b2").resolve("ff", "project")


def test_resolve_empty_prefix_is_invalid():
    """An empty short id should raise ValidationError."""
    from busy_core import ValidationError

    with pytest.raises(ValidationError):
        _index("a1b2").resolve("  ", "project")


def test_resolve_is_scoped_to_kind():
    """A project id should not resolve as a tag."""
    from busy_core import NotFoundError

    index = _index("a1b2")

    with pytest.raises(NotFoundError):
        index.resolve("a1b2", "tag")


def test_resolve_rejects_unknown_kind():
    """An unknown entity kind should raise ValidationError."""
    from busy_core import ValidationError

    with pytest.raises(ValidationError, match="Invalid entity kind"):
        _index("a1b2").resolve("a1", "issue")


def test_short_id_is_minimal_unique_prefix():
    """Short id grows until it separates the id from its neighbours."""
    index = _index("a1b2c3", "a1b2c4", "ff")

    assert index.short_id(_id("a1b2c3"), "project") == "a1b2c3"
    assert index.short_id(_id("ff"), "project") == "ff00"


def test_short_id_respects_min_length():
    """Short ids should never be shorter than the minimum length."""
    index = _index("a1b2", "ff")

    assert index.short_id(_id("a1b2"), "project", min_length=1) == "a"


def test_short_id_resolves_back():
    """Every displayed short id should resolve to its own entity."""
    from busy_core import generate_id, Index, Project

    projects = [Project(id=generate_id(), name=f"p{i}") for i in range(50)]
    index = Index()
    index.rebuild("project", projects)

    for project in projects:
        assert index.resolve(index.short_id(project.id, "project"), "project") == project.id


def test_add_keeps_index_sorted_for_resolution():
    """Incremental adds should keep resolution and positions correct."""
    from busy_core import Index, Project

    index = Index()
    for position, project in enumerate(_projects("c3", "a1", "b2")):
        index.add("project", project, position)

    assert index.resolve("a", "project") == _id("a1")
    assert index.position("project", _id("b2")) == 2


def test_lookup_by_name_and_rename():
    """Renames move the name entry to the new name."""
    index = _index("a1b2")
    project_id = _id("a1b2")

    assert index.lookup_by_name("project-a1b2", "project") == project_id

    index.rename("project", project_id, "project-a1b2", "renamed")

    assert index.lookup_by_name("renamed", "project") == project_id
    assert index.lookup_by_name("project-a1b2", "project") is None


def test_lookup_by_name_is_case_sensitive():
    """Name lookup should match case exactly."""
    index = _index("a1b2")

    assert index.lookup_by_name("PROJECT-A1B2", "project") is None


def test_tasks_have_no_names():
    """Name lookup on tasks should raise ValidationError."""
    from busy_core import Index, ValidationError

    with pytest.raises(ValidationError):
        Index().lookup_by_name("anything", "task")
