"""Global search across users, communities and threads."""
from __future__ import annotations

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from threadhub.models import Community, Thread, User
from threadhub.schemas.search import SearchResult
from threadhub.services.user_service import escape_like

RESULTS_PER_KIND = 5
TITLE_LENGTH = 40


def _title(text: str) -> str:
    if len(text) <= TITLE_LENGTH:
        return text
    return f"{text[:TITLE_LENGTH]}..."


def search_content(db: Session, query: str) -> list[SearchResult]:
    """Return up to five matches of each kind; a blank query matches nothing."""
    term = query.strip()
    if not term:
        return []
    pattern = f"%{escape_like(term)}%"

    users = db.scalars(
        select(User)
        .where(
            or_(
                User.name.ilike(pattern, escape="\\"),
                User.username.ilike(pattern, escape="\\"),
            )
        )
        .order_by(User.pk)
        .limit(RESULTS_PER_KIND)
    ).all()
    communities = db.scalars(
        select(Community)
        .where(
            or_(
                Community.name.ilike(pattern, escape="\\"),
                Community.bio.ilike(pattern, escape="\\"),
            )
        )
        .order_by(Community.pk)
        .limit(RESULTS_PER_KIND)
    ).all()
    threads = db.scalars(
        select(Thread)
        .where(Thread.text.ilike(pattern, escape="\\"))
        .order_by(Thread.created_at.desc(), Thread.pk.desc())
        .limit(RESULTS_PER_KIND)
    ).all()

    results = [
        SearchResult(
            id=u.id, type="user", title=u.name, image=u.image, url=f"/profile/{u.id}"
        )
        for u in users
    ]
    results.extend(
        SearchResult(
            id=c.id,
            type="community",
            title=c.name,
            image=c.image,
            url=f"/communities/{c.id}",
        )
        for c in communities
    )
    results.extend(
        SearchResult(
            id=str(t.pk),
            type="post",
            title=_title(t.text),
            image=t.author.image,
            url=f"/thread/{t.pk}",
        )
        for t in threads
    )
    return results
