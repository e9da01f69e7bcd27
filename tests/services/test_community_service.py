"""Tests for community creation, listing and organization bookkeeping."""

import pytest
from sqlalchemy import select

from threadhub.models import Community, Thread
from threadhub.schemas.common import PageParams, ResultReason
from threadhub.schemas.community import CommunityCreate
from threadhub.services import community_service
from threadhub.services.identifiers import CommunityRef
from threadhub.services.identity import IdentityProviderDisabledError, IdentityProviderError
from threadhub.services.retry import RetryPolicy


@pytest.fixture()
def no_wait() -> RetryPolicy:
    return RetryPolicy(retries=1, delay=0.0)


async def test_create_links_new_organization(
    db_session, provider, cache, test_user, no_wait
) -> None:
    params = CommunityCreate(name="Gardeners", username="gardeners", bio="Plants")

    result = await community_service.create_community(
        db_session, params, test_user.id, provider, cache, no_wait
    )

    assert result.success is True
    assert result.message == "Community created"
    community = db_session.scalars(select(Community)).one()
    assert community.id == community.clerk_id == result.data.id
    assert community.id.startswith("org_")
    assert community.members == [test_user]
    assert provider.call_count("create_organization") == 1
    assert provider.calls[-1] == ("create_membership", (community.id, test_user.id, "org:admin"))


async def test_create_without_provider_stays_local(db_session, cache, test_user) -> None:
    params = CommunityCreate(name="Local", username="local")

    result = await community_service.create_community(db_session, params, test_user.id, None, cache)

    assert result.success is True
    assert result.data.id.startswith("community_")
    assert result.data.clerk_id is None


async def test_external_failure_keeps_local_community(
    db_session, provider, cache, test_user, no_wait
) -> None:
    provider.fail_next(
        "create_organization",
        IdentityProviderError("down", 503),
        IdentityProviderError("down", 503),
    )
    params = CommunityCreate(name="Resilient", username="resilient")

    result = await community_service.create_community(
        db_session, params, test_user.id, provider, cache, no_wait
    )

    assert result.success is True
    assert result.message.startswith("Community created locally;")
    community = db_session.scalars(select(Community)).one()
    assert community.clerk_id is None
    assert community.id.startswith("community_")


async def test_disabled_provider_is_silent(
    db_session, provider, cache, test_user, no_wait
) -> None:
    provider.fail_next("create_organization", IdentityProviderDisabledError("no key"))

    result = await community_service.create_community(
        db_session, CommunityCreate(name="Quiet", username="quiet"), test_user.id,
        provider, cache, no_wait,
    )

    assert result.message == "Community created"
    assert result.data.clerk_id is None


async def test_duplicate_username_is_a_conflict(db_session, cache, test_user, community) -> None:
    params = CommunityCreate(name="Other", username=community.username)

    result = await community_service.create_community(db_session, params, test_user.id, None, cache)

    assert result.success is False
    assert result.reason is ResultReason.CONFLICT
    assert result.error == "Community with this username already exists"


async def test_blank_name_is_invalid(db_session, cache, test_user) -> None:
    params = CommunityCreate(name="   ", username="blank")

    result = await community_service.create_community(db_session, params, test_user.id, None, cache)

    assert result.reason is ResultReason.INVALID


async def test_unknown_creator_is_not_found(db_session, cache) -> None:
    params = CommunityCreate(name="Orphan", username="orphan")

    result = await community_service.create_community(db_session, params, "user_ghost", None, cache)

    assert result.reason is ResultReason.NOT_FOUND


def test_fetch_communities_search_and_membership(
    db_session, test_user, other_user, community, linked_community
) -> None:
    page = community_service.fetch_communities(db_session, "LINK", PageParams(), other_user.id)

    assert page.total == 1
    assert page.is_next is False
    assert page.communities[0].id == "org_linked"
    assert page.communities[0].is_member is False

    mine = community_service.fetch_communities(db_session, "", PageParams(), test_user.id)
    assert mine.total == 2
    assert all(c.is_member for c in mine.communities)


def test_fetch_communities_paginates(db_session, test_user, community, linked_community) -> None:
    first = community_service.fetch_communities(db_session, "", PageParams(page=1, page_size=1))
    second = community_service.fetch_communities(db_session, "", PageParams(page=2, page_size=1))

    assert first.is_next is True
    assert second.is_next is False
    assert first.communities[0].id != second.communities[0].id
    assert first.communities[0].is_member is None


def test_like_wildcards_are_literal(db_session, community) -> None:
    page = community_service.fetch_communities(db_session, "%")

    assert page.total == 0


def test_user_and_suggested_communities(
    db_session, test_user, other_user, community, linked_community
) -> None:
    assert {c.id for c in community_service.get_user_communities(db_session, test_user.id)} == {
        community.id,
        linked_community.id,
    }
    assert community_service.get_user_communities(db_session, other_user.id) == []
    suggested = community_service.fetch_suggested_communities(db_session, other_user.id, limit=1)
    assert len(suggested) == 1
    assert community_service.fetch_suggested_communities(db_session, test_user.id) == []


def test_community_threads_are_roots_with_replies(
    db_session, test_user, other_user, community
) -> None:
    root = Thread(text="Welcome", author=test_user, community=community)
    reply = Thread(text="Thanks", author=other_user, community=community, parent=root)
    db_session.add_all([root, reply])
    db_session.commit()

    threads = community_service.fetch_community_threads(db_session, CommunityRef.parse(community.id))

    assert threads == [root]
    assert threads[0].children == [reply]
    assert community_service.fetch_community_threads(db_session, CommunityRef.parse("nope")) is None


def test_update_community_info_applies_changes(db_session, cache, linked_community) -> None:
    result = community_service.update_community_info(
        db_session, "org_linked", name="Renamed", slug="renamed", image=None, cache=cache
    )

    assert result.success is True
    assert linked_community.name == "Renamed"
    assert linked_community.username == "renamed"

    again = community_service.update_community_info(
        db_session, "org_linked", name="Renamed", slug="renamed", cache=cache
    )
    assert again.message == "Community already up to date"


def test_detach_clears_link_and_members_but_keeps_threads(
    db_session, cache, test_user, linked_community
) -> None:
    thread = Thread(text="Kept", author=test_user, community=linked_community)
    db_session.add(thread)
    db_session.commit()

    result = community_service.detach_organization(db_session, "org_linked", cache)

    assert result.success is True
    assert linked_community.clerk_id is None
    assert linked_community.members == []
    assert thread.community is linked_community
    # The public id still resolves after the link is gone.
    assert CommunityRef.external("org_linked").resolve(db_session) is linked_community


def test_detach_unknown_organization(db_session, cache) -> None:
    result = community_service.detach_organization(db_session, "org_missing", cache)

    assert result.reason is ResultReason.NOT_FOUND
