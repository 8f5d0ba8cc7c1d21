import logging
from typing import TYPE_CHECKING

from networkx import DiGraph

if TYPE_CHECKING:
    from accord.entities.member import Member
    from accord.entities.role import Role
    from typing import Iterable, Mapping, Set, Tuple

    Node = Tuple[str, str]


class MembershipGraph:
    """The role membership graph of one server.

    A directed graph with an edge from each role to every member holding it.  Role nodes are
    added for every role id a member references, including ids whose role document no longer
    exists, so that the holders of a deleted role can still be found while their references are
    being pruned.

    Attributes:
        server_id: The server the graph was built for
    """

    def __init__(self, server_id):
        # type: (str) -> None
        self._logger = logging.getLogger(__name__)
        self.server_id = server_id
        self._graph = DiGraph()
        self._owners = set()  # type: Set[str]

    @classmethod
    def build(cls, server_id, roles, members):
        # type: (str, Mapping[str, Role], Mapping[str, Member]) -> MembershipGraph
        graph = cls(server_id)
        graph._graph.add_nodes_from(("Role", role_id) for role_id in roles)
        for member in members.values():
            graph.add_member(member)

        owner_roles = {role_id for role_id, role in roles.items() if role.is_owner_role}
        for role_id in owner_roles:
            graph._owners.update(graph.members_with_role(role_id))

        graph._logger.debug(
            "Built membership graph for %s with %d roles and %d members",
            server_id,
            len(graph.roles()),
            len(graph.members()),
        )
        return graph

    def add_member(self, member):
        # type: (Member) -> None
        node = ("Member", member.uid)
        if self._graph.has_node(node):
            self._graph.remove_edges_from(list(self._graph.in_edges(node)))
        self._graph.add_node(node)
        self._graph.add_edges_from((("Role", role_id), node) for role_id in member.role_ids)
        if member.is_owner:
            self._owners.add(member.uid)
        else:
            self._owners.discard(member.uid)

    def _nodes_of_type(self, nodes, node_type):
        # type: (Iterable[Node], str) -> Set[str]
        return {name for kind, name in nodes if kind == node_type}

    def roles(self):
        # type: () -> Set[str]
        return self._nodes_of_type(self._graph.nodes, "Role")

    def members(self):
        # type: () -> Set[str]
        return self._nodes_of_type(self._graph.nodes, "Member")

    def non_owner_members(self):
        # type: () -> Set[str]
        return self.members() - self._owners

    def members_with_role(self, role_id):
        # type: (str) -> Set[str]
        node = ("Role", role_id)
        if not self._graph.has_node(node):
            return set()
        return self._nodes_of_type(self._graph.successors(node), "Member")

    def roles_of_member(self, uid):
        # type: (str) -> Set[str]
        node = ("Member", uid)
        if not self._graph.has_node(node):
            return set()
        return self._nodes_of_type(self._graph.predecessors(node), "Role")
