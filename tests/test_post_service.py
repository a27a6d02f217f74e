import pytest
from sqlalchemy.exc import IntegrityError

from quill.errors import ConflictError, NotFoundError, ValidationError
from quill.infra import post_repo
from quill.infra.db import PostRow
from quill.schemas import PostIn
from quill.services import post_service


def _post(**overrides) -> PostIn:
    fields = {"title": "Hello", "slug": "hello", "content": "some words here"}
    fields.update(overrides)
    return PostIn(**fields)


def test_create_and_find(db):
    post_id, slug = post_service.create_post(db, _post(excerpt="  short  ", tags=["a", "b"], published=True))
    assert slug == "hello"

    post = post_service.find_by_slug(db, "hello")
    assert post["id"] == post_id
    assert post["excerpt"] == "short"
    assert post["tags"] == ["a", "b"]
    assert post["published"] is True
    assert post["readingTime"] == 1
    assert post["createdAt"] == post["updatedAt"]


def test_create_without_excerpt_has_no_field(db):
    post_service.create_post(db, _post(excerpt=""))
    assert "excerpt" not in post_service.find_by_slug(db, "hello")


@pytest.mark.parametrize(
    "overrides",
    [{"title": ""}, {"slug": ""}, {"content": ""}, {"title": "   "}],
)
def test_create_requires_fields(db, overrides):
    with pytest.raises(ValidationError):
        post_service.create_post(db, _post(**overrides))


@pytest.mark.parametrize("slug", ["Hello", "hello world", "héllo", "hello_world"])
def test_create_rejects_bad_slug(db, slug):
    with pytest.raises(ValidationError):
        post_service.create_post(db, _post(slug=slug))


def test_duplicate_slug_conflicts_and_keeps_original(db):
    post_service.create_post(db, _post(title="Original"))
    before = post_service.find_by_slug(db, "hello")

    with pytest.raises(ConflictError):
        post_service.create_post(db, _post(title="Impostor", content="other"))

    assert post_service.find_by_slug(db, "hello") == before
    assert len(post_service.list_all(db)) == 1


def test_unique_constraint_catches_race_past_precheck(db, monkeypatch):
    post_service.create_post(db, _post(title="First"))
    # Simulate a concurrent writer that inserted after our existence check.
    monkeypatch.setattr(post_repo, "slug_taken", lambda *a, **kw: False)

    with pytest.raises(ConflictError):
        post_service.create_post(db, _post(title="Second"))
    assert [p["title"] for p in post_service.list_all(db)] == ["First"]


def test_unique_constraint_catches_rename_race(db, monkeypatch):
    post_service.create_post(db, _post(slug="a", title="A"))
    post_service.create_post(db, _post(slug="b", title="B"))
    a_before = post_service.find_by_slug(db, "a")
    monkeypatch.setattr(post_repo, "slug_taken", lambda *a, **kw: False)

    with pytest.raises(ConflictError):
        post_service.update_post(db, "a", _post(slug="b", title="A2"))
    assert post_service.find_by_slug(db, "a") == a_before
    assert post_service.find_by_slug(db, "b")["title"] == "B"


def test_other_integrity_errors_are_not_slug_conflicts(db):
    with pytest.raises(IntegrityError):
        with db.session_scope() as session:
            now = post_service.utc_now()
            post_repo.add_post(session, PostRow(title=None, slug="x", content="c", created_at=now, updated_at=now))


def test_rename(db):
    post_id, _ = post_service.create_post(db, _post(slug="a"))
    created = post_service.find_by_slug(db, "a")

    assert post_service.update_post(db, "a", _post(slug="b", title="Renamed")) == "b"

    assert post_service.find_by_slug(db, "a") is None
    post = post_service.find_by_slug(db, "b")
    assert post["id"] == post_id
    assert post["title"] == "Renamed"
    assert post["createdAt"] == created["createdAt"]
    assert post["updatedAt"] > created["updatedAt"]


def test_rename_collision_leaves_both_unchanged(db):
    post_service.create_post(db, _post(slug="a", title="A"))
    post_service.create_post(db, _post(slug="b", title="B"))
    a_before = post_service.find_by_slug(db, "a")
    b_before = post_service.find_by_slug(db, "b")

    with pytest.raises(ConflictError):
        post_service.update_post(db, "a", _post(slug="b", title="A2"))

    assert post_service.find_by_slug(db, "a") == a_before
    assert post_service.find_by_slug(db, "b") == b_before


def test_update_keeping_slug_is_not_a_conflict(db):
    post_service.create_post(db, _post())
    assert post_service.update_post(db, "hello", _post(title="Changed")) == "hello"
    assert post_service.find_by_slug(db, "hello")["title"] == "Changed"


def test_update_lowercases_new_slug(db):
    post_service.create_post(db, _post())
    assert post_service.update_post(db, "hello", _post(slug="  New-Slug ")) == "new-slug"
    assert post_service.find_by_slug(db, "new-slug") is not None


def test_update_unknown_slug(db):
    with pytest.raises(NotFoundError):
        post_service.update_post(db, "missing", _post())


def test_update_validates_new_slug(db):
    post_service.create_post(db, _post())
    with pytest.raises(ValidationError):
        post_service.update_post(db, "hello", _post(slug="bad slug"))


def test_empty_excerpt_removes_field(db):
    post_service.create_post(db, _post(excerpt="teaser"))
    post_service.update_post(db, "hello", _post(excerpt=""))
    assert "excerpt" not in post_service.find_by_slug(db, "hello")

    with db.session_scope() as session:
        assert post_repo.get_by_slug(session, "hello").excerpt is None


def test_update_recomputes_reading_time(db):
    post_service.create_post(db, _post(content="one"))
    post_service.update_post(db, "hello", _post(content=" ".join(["w"] * 400)))
    assert post_service.find_by_slug(db, "hello")["readingTime"] == 2


def test_mixed_case_lookup_only_via_fallback(db):
    post_service.create_post(db, _post(slug="foo-bar"))

    with db.session_scope() as session:
        assert post_repo.get_by_slug(session, "Foo-Bar") is None

    assert post_service.find_by_slug(db, "Foo-Bar")["slug"] == "foo-bar"
    assert post_service.update_post(db, "Foo-Bar", _post(slug="foo-bar", title="Found")) == "foo-bar"


def test_listing_order_and_published_filter(db):
    post_service.create_post(db, _post(slug="first", published=True))
    post_service.create_post(db, _post(slug="second", published=False))
    post_service.create_post(db, _post(slug="third", published=True))

    assert [p["slug"] for p in post_service.list_all(db)] == ["third", "second", "first"]
    assert [p["slug"] for p in post_service.list_published(db)] == ["third", "first"]
    assert post_service.find_published_by_slug(db, "second") is None
    assert post_service.find_published_by_slug(db, "first")["slug"] == "first"


def test_dashboard_stats(db):
    for i in range(7):
        post_service.create_post(db, _post(slug=f"p{i}", published=i % 2 == 0))

    stats = post_service.dashboard_stats(db)
    assert (stats["total"], stats["published"], stats["drafts"]) == (7, 4, 3)
    assert [p["slug"] for p in stats["recent"]] == ["p6", "p5", "p4", "p3", "p2"]
