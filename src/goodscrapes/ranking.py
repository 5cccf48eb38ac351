"""
Similarity metrics between a target reader and other members.

The match value relates the number of common authors to the size of the
member's whole library. Counting the member's authors would be more accurate
but needs their entire library, while the library size is a single request.
Treat it as a score, the higher the better, not as a percentage.
"""

from dataclasses import dataclass, field

from .models import User


def ratio_half_up(numerator: int, denominator: int, scale: int) -> int:
    """Round numerator/denominator*scale half up in exact integer arithmetic."""
    return (2 * scale * numerator + denominator) // (2 * denominator)


def commonality_percent(common_authors: int, target_authors: int) -> int:
    """Share of the target's authors the member has read, 0..100."""
    if target_authors <= 0:
        return 0
    return ratio_half_up(common_authors, target_authors, 100)


def match_score(common_authors: int, library_size: int | None) -> int | None:
    """Common authors per 1000 books in the member's library; None if not comparable."""
    if not library_size or library_size <= 0:
        return None
    return ratio_half_up(common_authors, library_size, 1000)


@dataclass
class Match:
    """A ranked member and the authors they share with the target."""

    user: User
    common_author_ids: set[str] = field(default_factory=set)
    commonality: int = 0
    score: int = 0

    @property
    def common_count(self) -> int:
        return len(self.common_author_ids)


def select_candidates(
    authors_read_by: dict[str, set[str]],
    target_author_count: int,
    min_common_percent: int,
    exclude_user_id: str | None = None,
) -> dict[str, set[str]]:
    """Keep members who read at least ``min_common_percent`` of the target's authors."""
    return {
        user_id: author_ids
        for user_id, author_ids in authors_read_by.items()
        if user_id != exclude_user_id
        and commonality_percent(len(author_ids), target_author_count) >= min_common_percent
    }


def build_match(user: User, common_author_ids: set[str], target_author_count: int) -> Match | None:
    """Score one member; private accounts and empty libraries yield None."""
    if user.is_private:
        return None
    score = match_score(len(common_author_ids), user.num_books)
    if score is None:
        return None
    return Match(
        user=user,
        common_author_ids=set(common_author_ids),
        commonality=commonality_percent(len(common_author_ids), target_author_count),
        score=score,
    )


def rank_matches(matches: list[Match]) -> list[Match]:
    """Best match first; ties broken by more common authors, then by user id."""
    return sorted(matches, key=lambda m: (-m.score, -m.common_count, m.user.id))
