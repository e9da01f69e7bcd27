"""Tests for global search and user profile helpers."""

from threadhub.models import Thread
from threadhub.schemas.common import PageParams, ResultReason
from threadhub.schemas.user import UserUpdate
from threadhub.services import user_service
from threadhub.services.search import search_content


def test_blank_query_returns_nothing(db_session, test_user) -> None:
    assert search_content(db_session, "   ") == []


def test_search_covers_users_communities_and_threads(
    db_session, test_user, community
) -> None:
    long_text = "Test " + "x" * 60
    db_session.add(Thread(text=long_text, author=test_user))
    db_session.commit()

    results = search_content(db_session, "test")

    by_type = {r.type: r for r in results}
    assert by_type["community"].url == f"/communities/{community.id}"
    assert by_type["post"].title == long_text[:40] + "..."
    assert by_type["post"].url.startswith("/thread/")
    assert "user" not in by_type


def test_search_limits_each_kind_to_five(db_session, test_user) -> None:
    db_session.add_all(Thread(text=f"match {i}", author=test_user) for i in range(8))
    db_session.commit()

    results = search_content(db_session, "match")

    assert len(results) == 5
    assert results[0].title == "match 7"


def test_search_finds_users_by_name(db_session, test_user) -> None:
    results = search_content(db_session, "liddell")

    assert [(r.type, r.url) for r in results] == [("user", f"/profile/{test_user.id}")]


def test_upsert_creates_onboarded_profile_with_lowercase_username(db_session) -> None:
    result = user_service.upsert_user(
        db_session, "user_new", UserUpdate(username="NewUser", name="New User", bio="hi")
    )

    assert result.success is True
    assert result.message == "User created"
    user = user_service.get_user(db_session, "user_new")
    assert user.username == "newuser"
    assert user.onboarded is True


def test_upsert_rejects_username_of_someone_else(db_session, test_user, other_user) -> None:
    result = user_service.upsert_user(
        db_session, other_user.id, UserUpdate(username=test_user.username, name="Bob")
    )

    assert result.reason is ResultReason.CONFLICT


def test_fetch_users_excludes_caller_and_searches(db_session, test_user, other_user) -> None:
    everyone = user_service.fetch_users(db_session, test_user.id)
    builders = user_service.fetch_users(db_session, test_user.id, "BUILD", PageParams())
    nobody = user_service.fetch_users(db_session, test_user.id, "alice")

    assert [u.id for u in everyone.users] == [other_user.id]
    assert builders.total == 1
    assert nobody.total == 0


def test_suggested_users_skip_caller(db_session, test_user, other_user) -> None:
    assert [u.id for u in user_service.get_suggested_users(db_session, other_user.id)] == [
        test_user.id
    ]
