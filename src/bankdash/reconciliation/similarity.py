"""Duplicate connection detection.

Connections are compared pairwise (connection counts are in the tens, so the
quadratic pass is fine). The first matching rule classifies a pair:

1. same connector instance UUID -> ``exact``, high confidence
2. same connector ID -> ``sameConnector``, medium confidence
3. account similarity score above 0.7 -> ``similarAccounts``, high confidence
   above 0.9, medium otherwise

Once a connection has produced matches, it and every connection it matched are
claimed for the rest of the pass and are not compared again. Duplicate edges
are then merged into connected components so that membership is symmetric.
"""

from collections import defaultdict
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass

from ..schemas import Account, Confidence, Connection, DuplicateInfo, DuplicateType

SIMILARITY_THRESHOLD = 0.7
HIGH_CONFIDENCE_THRESHOLD = 0.9
IBAN_WEIGHT = 2
NUMBER_WEIGHT = 1

_TYPE_RANK = {
    DuplicateType.SIMILAR_ACCOUNTS: 0,
    DuplicateType.SAME_CONNECTOR: 1,
    DuplicateType.EXACT: 2,
}
_CONFIDENCE_RANK = {Confidence.LOW: 0, Confidence.MEDIUM: 1, Confidence.HIGH: 2}


@dataclass(frozen=True)
class AccountSimilarity:
    """Overlap between the account sets of two connections."""

    score: float
    iban_matches: int
    number_matches: int

    @property
    def matching_accounts(self) -> int:
        """Approximate number of shared accounts (an IBAN match counts once)."""
        raw = IBAN_WEIGHT * self.iban_matches + NUMBER_WEIGHT * self.number_matches
        return raw // IBAN_WEIGHT


def group_accounts_by_connection(
    accounts: Iterable[Account],
) -> dict[int, list[Account]]:
    """Index accounts by their owning connection ID."""
    grouped: dict[int, list[Account]] = defaultdict(list)
    for account in accounts:
        grouped[account.id_connection].append(account)
    return dict(grouped)


def account_similarity(
    accounts_a: Sequence[Account], accounts_b: Sequence[Account]
) -> AccountSimilarity:
    """Score how likely two account sets describe the same bank relationship.

    IBAN matches weigh twice as much as account number matches; the raw score
    is normalized by twice the size of the larger set and capped at 1.0.
    Missing IBANs and numbers are ignored.
    """
    if not accounts_a or not accounts_b:
        return AccountSimilarity(score=0.0, iban_matches=0, number_matches=0)

    ibans_a = {a.iban for a in accounts_a if a.iban}
    ibans_b = {a.iban for a in accounts_b if a.iban}
    numbers_a = {a.number for a in accounts_a if a.number}
    numbers_b = {a.number for a in accounts_b if a.number}

    iban_matches = len(ibans_a & ibans_b)
    number_matches = len(numbers_a & numbers_b)

    raw_score = IBAN_WEIGHT * iban_matches + NUMBER_WEIGHT * number_matches
    normalizer = IBAN_WEIGHT * max(len(accounts_a), len(accounts_b))
    score = min(raw_score / normalizer, 1.0)

    return AccountSimilarity(
        score=score, iban_matches=iban_matches, number_matches=number_matches
    )


@dataclass(frozen=True)
class _Match:
    type: DuplicateType
    confidence: Confidence
    reason: str

    @property
    def rank(self) -> tuple[int, int]:
        return _TYPE_RANK[self.type], _CONFIDENCE_RANK[self.confidence]


def _classify_pair(
    conn_a: Connection,
    conn_b: Connection,
    accounts_by_connection: Mapping[int, Sequence[Account]],
) -> _Match | None:
    if conn_a.connector_uuid == conn_b.connector_uuid:
        return _Match(DuplicateType.EXACT, Confidence.HIGH, "Same connector UUID")

    if conn_a.id_connector == conn_b.id_connector:
        return _Match(
            DuplicateType.SAME_CONNECTOR, Confidence.MEDIUM, "Same connector ID"
        )

    similarity = account_similarity(
        accounts_by_connection.get(conn_a.id, ()),
        accounts_by_connection.get(conn_b.id, ()),
    )
    if similarity.score > SIMILARITY_THRESHOLD:
        confidence = (
            Confidence.HIGH
            if similarity.score > HIGH_CONFIDENCE_THRESHOLD
            else Confidence.MEDIUM
        )
        return _Match(
            DuplicateType.SIMILAR_ACCOUNTS,
            confidence,
            f"Similar accounts: {similarity.matching_accounts} account(s) in common",
        )

    return None


def detect_duplicates(
    connections: Sequence[Connection], accounts: Iterable[Account]
) -> list[DuplicateInfo]:
    """Detect connections that represent the same real-world bank relationship.

    Connections are compared in id order, so the outcome does not depend on
    the order of the input.

    Args:
        connections: Current connection snapshot
        accounts: Current account snapshot

    Returns:
        One DuplicateInfo per connection that claimed duplicates during the
        pass. When a connection matched several others, the info carries the
        strongest classification among them.
    """
    accounts_by_connection = group_accounts_by_connection(accounts)
    claimed: set[int] = set()
    duplicates: list[DuplicateInfo] = []

    ordered = sorted(connections, key=lambda c: c.id)
    for i, conn_a in enumerate(ordered):
        if conn_a.id in claimed:
            continue

        duplicate_with: list[int] = []
        strongest: _Match | None = None

        for conn_b in ordered[i + 1 :]:
            if conn_b.id in claimed or conn_b.id == conn_a.id:
                continue

            match = _classify_pair(conn_a, conn_b, accounts_by_connection)
            if match is None:
                continue

            duplicate_with.append(conn_b.id)
            if strongest is None or match.rank > strongest.rank:
                strongest = match

        if strongest is not None:
            duplicates.append(
                DuplicateInfo(
                    connection_id=conn_a.id,
                    duplicate_with=tuple(duplicate_with),
                    type=strongest.type,
                    confidence=strongest.confidence,
                    reason=strongest.reason,
                )
            )
            claimed.add(conn_a.id)
            claimed.update(duplicate_with)

    return duplicates


def _strongest(infos: Iterable[DuplicateInfo]) -> DuplicateInfo:
    return max(
        infos,
        key=lambda d: (_TYPE_RANK[d.type], _CONFIDENCE_RANK[d.confidence]),
    )


@dataclass(frozen=True)
class DuplicateGroup:
    """A connected component of duplicate connections."""

    key: int
    connection_ids: tuple[int, ...]
    duplicates: tuple[DuplicateInfo, ...]

    @property
    def type(self) -> DuplicateType:
        return _strongest(self.duplicates).type

    @property
    def confidence(self) -> Confidence:
        return _strongest(self.duplicates).confidence

    def info_for(self, connection_id: int) -> DuplicateInfo:
        """Duplicate info for one member, listing every other member."""
        strongest = _strongest(self.duplicates)
        return DuplicateInfo(
            connection_id=connection_id,
            duplicate_with=tuple(c for c in self.connection_ids if c != connection_id),
            type=strongest.type,
            confidence=strongest.confidence,
            reason=strongest.reason,
        )


def group_duplicates(duplicates: Iterable[DuplicateInfo]) -> dict[int, DuplicateGroup]:
    """Merge duplicate edges into connected components.

    Returns:
        Groups keyed by the smallest connection ID of each component
    """
    parent: dict[int, int] = {}

    def find(node: int) -> int:
        parent.setdefault(node, node)
        root = node
        while parent[root] != root:
            root = parent[root]
        while parent[node] != root:
            parent[node], node = root, parent[node]
        return root

    def union(a: int, b: int) -> None:
        root_a, root_b = find(a), find(b)
        if root_a != root_b:
            parent[max(root_a, root_b)] = min(root_a, root_b)

    infos = list(duplicates)
    for info in infos:
        find(info.connection_id)
        for other in info.duplicate_with:
            union(info.connection_id, other)

    members: dict[int, set[int]] = defaultdict(set)
    for node in list(parent):
        members[find(node)].add(node)

    grouped_infos: dict[int, list[DuplicateInfo]] = defaultdict(list)
    for info in infos:
        grouped_infos[find(info.connection_id)].append(info)

    return {
        root: DuplicateGroup(
            key=min(ids),
            connection_ids=tuple(sorted(ids)),
            duplicates=tuple(grouped_infos[root]),
        )
        for root, ids in members.items()
    }


class DuplicateIndex:
    """Symmetric lookup of duplicate groups by connection ID."""

    def __init__(self, duplicates: Iterable[DuplicateInfo]):
        self.duplicates: tuple[DuplicateInfo, ...] = tuple(duplicates)
        self.groups = group_duplicates(self.duplicates)
        self._group_by_connection = {
            connection_id: group
            for group in self.groups.values()
            for connection_id in group.connection_ids
        }

    @classmethod
    def from_snapshot(
        cls, connections: Sequence[Connection], accounts: Iterable[Account]
    ) -> "DuplicateIndex":
        """Detect and group duplicates in one step."""
        return cls(detect_duplicates(connections, accounts))

    def group_for(self, connection_id: int) -> DuplicateGroup | None:
        return self._group_by_connection.get(connection_id)

    def is_duplicate(self, connection_id: int) -> bool:
        return connection_id in self._group_by_connection

    def info_for(self, connection_id: int) -> DuplicateInfo | None:
        group = self.group_for(connection_id)
        if group is None:
            return None
        return group.info_for(connection_id)
