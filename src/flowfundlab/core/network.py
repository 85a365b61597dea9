"""
Network containers for FlowFundLab.

A network is nothing more than an ordered collection of participants; the
allocation edges live on the participants themselves. Member order is the
iteration order of every engine, which keeps results reproducible.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field

from .accounts import Account
from .nodes import FlowNode


class _ParticipantGraph:
    """Lookup helpers shared by discrete and continuous networks."""

    def _members(self) -> tuple:
        raise NotImplementedError

    @property
    def ids(self) -> list[str]:
        """Participant ids in input order."""
        return [member.id for member in self._members()]

    def get(self, member_id: str):
        """Get a participant by id (first match), or None."""
        for member in self._members():
            if member.id == member_id:
                return member
        return None

    def has(self, member_id: str) -> bool:
        return self.get(member_id) is not None

    def incoming(self, member_id: str) -> list[str]:
        """Ids of participants that allocate to ``member_id``."""
        return [m.id for m in self._members() if member_id in m.allocations]

    def edges(self) -> list[tuple[str, str, float]]:
        """Declared allocation edges as (source, target, weight) triples."""
        return [
            (member.id, target_id, weight)
            for member in self._members()
            for target_id, weight in member.allocations.items()
        ]

    def __iter__(self) -> Iterator:
        return iter(self._members())

    def __len__(self) -> int:
        return len(self._members())


@dataclass(frozen=True)
class Network(_ParticipantGraph):
    """
    Discrete-mode network of accounts.

    Attributes:
        name: Human-readable network name
        accounts: Accounts in a stable order
    """

    name: str = "network"
    accounts: tuple[Account, ...] = field(default_factory=tuple)

    def __post_init__(self):
        object.__setattr__(self, "accounts", tuple(self.accounts))

    def _members(self) -> tuple[Account, ...]:
        return self.accounts

    @property
    def total_funds(self) -> float:
        return sum(acc.balance for acc in self.accounts)

    @property
    def total_shortfall(self) -> float:
        return sum(acc.shortfall for acc in self.accounts)

    @property
    def total_capacity(self) -> float:
        return sum(acc.capacity for acc in self.accounts)

    @property
    def total_overflow(self) -> float:
        return sum(acc.overflow for acc in self.accounts)

    def balances(self) -> dict[str, float]:
        return {acc.id: acc.balance for acc in self.accounts}

    def with_balances(self, balances: Mapping[str, float]) -> Network:
        """
        Return a new network whose accounts hold the given balances.

        Accounts missing from ``balances`` keep their current balance.
        """
        accounts = tuple(
            acc.with_balance(balances[acc.id]) if acc.id in balances else acc
            for acc in self.accounts
        )
        return Network(name=self.name, accounts=accounts)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "accounts": [acc.to_dict() for acc in self.accounts],
        }


@dataclass(frozen=True)
class FlowNetwork(_ParticipantGraph):
    """
    Continuous-mode network of flow nodes.

    Attributes:
        name: Human-readable network name
        nodes: Nodes in a stable order
    """

    name: str = "flow-network"
    nodes: tuple[FlowNode, ...] = field(default_factory=tuple)

    def __post_init__(self):
        object.__setattr__(self, "nodes", tuple(self.nodes))

    def _members(self) -> tuple[FlowNode, ...]:
        return self.nodes

    @property
    def total_external_inflow(self) -> float:
        return sum(node.external_inflow for node in self.nodes)

    @property
    def total_network_capacity(self) -> float:
        return sum(node.max_threshold for node in self.nodes)

    @property
    def total_network_needs(self) -> float:
        return sum(node.min_threshold for node in self.nodes)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "nodes": [node.to_dict() for node in self.nodes],
        }


def as_network(obj: Network | Sequence[Account] | Mapping) -> Network:
    """Coerce a network, a sequence of accounts or a document into a Network."""
    if isinstance(obj, Network):
        return obj
    if isinstance(obj, Mapping):
        from .catalog_loader import load_network

        loaded = load_network(obj)
        if not isinstance(loaded, Network):
            raise TypeError("Expected a document with 'accounts', got 'nodes'")
        return loaded
    members = list(obj)
    if not all(isinstance(m, Account) for m in members):
        raise TypeError("Network members must be Account instances")
    return Network(accounts=tuple(members))


def as_flow_network(obj: FlowNetwork | Sequence[FlowNode] | Mapping) -> FlowNetwork:
    """Coerce a flow network, a sequence of nodes or a document into a FlowNetwork."""
    if isinstance(obj, FlowNetwork):
        return obj
    if isinstance(obj, Mapping):
        from .catalog_loader import load_network

        loaded = load_network(obj)
        if not isinstance(loaded, FlowNetwork):
            raise TypeError("Expected a document with 'nodes', got 'accounts'")
        return loaded
    members = list(obj)
    if not all(isinstance(m, FlowNode) for m in members):
        raise TypeError("FlowNetwork members must be FlowNode instances")
    return FlowNetwork(nodes=tuple(members))
