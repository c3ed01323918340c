import re
from typing import Callable, Iterable, List, Optional

from time_reports.models import MemberInfo


def _squash(text: str) -> str:
    return re.sub(r"\s+", "", text)


def resolve_member(term: str, members: Iterable[MemberInfo]) -> Optional[MemberInfo]:
    """
    Resolve a name, partial name or email to a workspace member.

    Tiers are tried in order and the first tier with a hit wins:
        1. exact email (case-insensitive)
        2. exact username (case-insensitive)
        3. username contains the term
        4. exact username ignoring all whitespace
        5. fuzzy: username contains term, term contains username,
           or email contains term

    Within a tier the first member in directory order wins. There is no
    ranking between several partial matches.
    """
    search = (term or "").strip().lower()
    if not search:
        return None

    members: List[MemberInfo] = list(members)
    squashed = _squash(search)

    def username(m: MemberInfo) -> str:
        return (m.username or "").lower()

    def email(m: MemberInfo) -> str:
        return (m.email or "").lower()

    def fuzzy(m: MemberInfo) -> bool:
        name = username(m)
        return (
            search in name
            or (bool(name) and name in search)
            or search in email(m)
        )

    tiers: List[Callable[[MemberInfo], bool]] = [
        lambda m: email(m) == search,
        lambda m: username(m) == search,
        lambda m: search in username(m),
        lambda m: bool(username(m)) and _squash(username(m)) == squashed,
        fuzzy,
    ]

    for matches in tiers:
        for member in members:
            if matches(member):
                return member
    return None
