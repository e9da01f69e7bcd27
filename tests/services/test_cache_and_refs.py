"""Tests for the view cache and community identifiers."""

import pytest

from threadhub.services.cache import ViewCache
from threadhub.services.identifiers import CommunityRef, RefKind


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


def test_entries_expire_after_ttl() -> None:
    clock = FakeClock()
    cache = ViewCache(ttl_seconds=10, clock=clock)
    cache.set("/communities", ["a"])

    clock.now += 9
    assert cache.get("/communities") == ["a"]
    clock.now += 1
    assert cache.get("/communities") is None


def test_invalidate_drops_path_and_its_query_variants_only() -> None:
    cache = ViewCache(ttl_seconds=60)
    cache.set("/communities", 1)
    cache.set("/communities?page=2", 2)
    cache.set("/communities/org_a", 3)

    assert cache.invalidate("/communities") is True
    assert cache.get("/communities?page=2") is None
    assert cache.get("/communities/org_a") == 3
    assert cache.invalidate("/communities") is False


def test_invalidate_prefix_and_clear() -> None:
    cache = ViewCache(ttl_seconds=60)
    cache.set("/communities/1", 1)
    cache.set("/communities/2", 2)
    cache.set("/threads", 3)

    assert cache.invalidate_prefix("/communities/") == 2
    cache.clear()
    assert cache.get("/threads") is None


def test_invalidate_community_skips_empty_ids() -> None:
    cache = ViewCache(ttl_seconds=60)
    cache.set("/communities/org_a", 1)
    cache.set("/communities/", 2)

    cache.invalidate_community("org_a", None, "")

    assert cache.get("/communities/org_a") is None
    assert cache.get("/communities/") == 2


@pytest.mark.parametrize(
    ("raw", "kind"),
    [
        ("42", RefKind.STORAGE),
        ("org_2abc", RefKind.EXTERNAL),
        ("community_ff00", RefKind.PUBLIC),
        ("  org_x  ", RefKind.EXTERNAL),
    ],
)
def test_parse_tags_identifier_kind(raw: str, kind: RefKind) -> None:
    ref = CommunityRef.parse(raw)

    assert ref.kind is kind
    assert str(ref) == raw.strip()


def test_parse_rejects_empty_identifier() -> None:
    with pytest.raises(ValueError):
        CommunityRef.parse(" ")


def test_each_kind_resolves_the_same_community(db_session, community) -> None:
    assert CommunityRef.storage(community.pk).resolve(db_session) is community
    assert CommunityRef.parse(community.id).resolve(db_session) is community
    assert CommunityRef.parse(str(community.pk)).resolve(db_session) is community
    assert CommunityRef.parse("9999").resolve(db_session) is None
