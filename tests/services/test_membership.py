"""Tests for joining and leaving communities."""

from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from threadhub.models import community_member
from threadhub.schemas.common import ResultReason
from threadhub.services.cache import COMMUNITIES_PATH, community_path
from threadhub.services.identifiers import CommunityRef
from threadhub.services.membership import join_community, leave_community


def _membership_rows(db_session) -> int:
    return db_session.scalar(select(func.count()).select_from(community_member))


def test_join_adds_single_membership_row(db_session, cache, community, other_user) -> None:
    result = join_community(db_session, CommunityRef.parse(community.id), other_user.id, cache)

    assert result.success is True
    assert result.message == "Successfully joined community"
    assert result.data.is_member is True
    assert result.data.member_count == 2
    assert other_user in community.members
    assert community in other_user.communities
    assert _membership_rows(db_session) == 2


def test_join_twice_is_a_noop(db_session, cache, community, other_user) -> None:
    ref = CommunityRef.storage(community.pk)
    join_community(db_session, ref, other_user.id, cache)

    result = join_community(db_session, ref, other_user.id, cache)

    assert result.success is True
    assert result.message == "Already a member"
    assert _membership_rows(db_session) == 2


def test_leave_removes_membership(db_session, cache, community, test_user) -> None:
    result = leave_community(db_session, CommunityRef.parse(community.id), test_user.id, cache)

    assert result.success is True
    assert result.message == "Successfully left community"
    assert community.members == []
    assert test_user.communities == []
    assert _membership_rows(db_session) == 0


def test_leave_when_not_member_changes_nothing(db_session, cache, community, other_user) -> None:
    result = leave_community(db_session, CommunityRef.parse(community.id), other_user.id, cache)

    assert result.success is True
    assert result.message == "User is not a member"
    assert _membership_rows(db_session) == 1


def test_unknown_community_is_not_found(db_session, cache, test_user) -> None:
    result = join_community(db_session, CommunityRef.parse("org_missing"), test_user.id, cache)

    assert result.success is False
    assert result.reason is ResultReason.NOT_FOUND
    assert result.error == "Community not found"


def test_unknown_user_is_not_found(db_session, cache, community) -> None:
    result = leave_community(db_session, CommunityRef.parse(community.id), "user_ghost", cache)

    assert result.success is False
    assert result.reason is ResultReason.NOT_FOUND
    assert result.error == "User not found"


def test_external_ref_resolves_linked_community(
    db_session, cache, linked_community, other_user
) -> None:
    result = join_community(
        db_session, CommunityRef.external("org_linked"), other_user.id, cache
    )

    assert result.success is True
    assert result.data.clerk_id == "org_linked"


def test_membership_change_invalidates_views(db_session, cache, community, other_user) -> None:
    cache.set(COMMUNITIES_PATH, "listing")
    cache.set(f"{COMMUNITIES_PATH}?search=&page=1", "page")
    cache.set(community_path(community.id), "detail")
    cache.set(community_path(str(community.pk)), "detail")

    join_community(db_session, CommunityRef.parse(community.id), other_user.id, cache)

    assert cache.get(COMMUNITIES_PATH) is None
    assert cache.get(f"{COMMUNITIES_PATH}?search=&page=1") is None
    assert cache.get(community_path(community.id)) is None
    assert cache.get(community_path(str(community.pk))) is None


def test_noop_join_keeps_cached_views(db_session, cache, community, test_user) -> None:
    cache.set(COMMUNITIES_PATH, "listing")

    join_community(db_session, CommunityRef.parse(community.id), test_user.id, cache)

    assert cache.get(COMMUNITIES_PATH) == "listing"


def test_database_failure_rolls_back(mocker, db_session, cache, community, other_user) -> None:
    mocker.patch.object(db_session, "commit", side_effect=OperationalError("", {}, Exception()))
    rollback = mocker.spy(db_session, "rollback")
    cache.set(community_path(community.id), "cached")

    result = join_community(db_session, CommunityRef.parse(community.id), other_user.id, cache)

    assert result.success is False
    assert result.reason is ResultReason.INTERNAL
    assert result.error == "Failed to join community"
    rollback.assert_called_once()
    assert cache.get(community_path(community.id)) == "cached"
