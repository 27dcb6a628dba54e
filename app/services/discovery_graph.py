"""In-memory discovery graph of movies and actors."""
from typing import Any, Dict, Iterable, Iterator, List, Optional, Set, Tuple

from ..models import Edge, Node, ref_id, related_type


class DiscoveryGraph:
    """Nodes (movies/actors) and the edges linking actors to their movies.

    Nodes are kept in insertion order and indexed by id, which guarantees a
    single node per underlying entity.  Edges may be duplicated.  The set of
    discovered ids is maintained alongside every flag change so it always
    matches the node flags.

    Edge endpoints are node ids in canonical form.  A renderer may replace
    them with node objects; :meth:`to_persisted` normalises them back.
    """

    def __init__(self) -> None:
        self._nodes: Dict[str, Node] = {}
        self.edges: List[Edge] = []
        self._discovered: Set[str] = set()

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def seed(cls, entity: Dict[str, Any]) -> 'DiscoveryGraph':
        """Build the 1-hop graph around a seed entity.

        The seed node is discovered; every actor of a seed movie (or movie
        of a seed actor) is added undiscovered with an edge from the seed.
        """
        graph = cls()
        start = Node.from_entity(entity, discovered=True)
        graph.add_node(start)
        related_key = 'actors' if start.type == 'movie' else 'movies'
        graph.expand(start.id, entity.get(related_key) or [], related_type(start.type))
        return graph

    @classmethod
    def from_persisted(cls, data: Dict[str, Any]) -> 'DiscoveryGraph':
        """Rebuild a graph from the output of :meth:`to_persisted`."""
        graph = cls()
        for raw in data.get('nodes', []):
            graph.add_node(Node(raw['id'], raw['name'], raw['type'], bool(raw['discovered'])))
        for raw in data.get('edges', []):
            graph.add_edge(Edge(ref_id(raw['source']), ref_id(raw['target'])))
        return graph

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def add_node(self, node: Node) -> bool:
        """Append *node* unless a node with the same id exists.

        Returns:
            ``True`` when the node was added.
        """
        if node.id in self._nodes:
            return False
        self._nodes[node.id] = node
        if node.discovered:
            self._discovered.add(node.id)
        return True

    def add_edge(self, edge: Edge) -> None:
        self.edges.append(edge)

    def mark_discovered(self, node_id: str) -> None:
        node = self._nodes.get(node_id)
        if node is None:
            return
        node.discovered = True
        self._discovered.add(node_id)

    def expand(self, node_id: str, related_entities: Iterable[Dict[str, Any]],
               related: str) -> Tuple[List[Node], List[Edge]]:
        """Splice entities related to *node_id* into the graph.

        Entities already present as nodes are skipped entirely (no node, no
        edge).  New nodes are undiscovered.

        Returns:
            ``(new_nodes, new_edges)``
        """
        new_nodes: List[Node] = []
        new_edges: List[Edge] = []
        for entity in related_entities:
            node = Node.from_entity(entity, node_type=related)
            if not self.add_node(node):
                continue
            edge = Edge(node_id, node.id)
            self.add_edge(edge)
            new_nodes.append(node)
            new_edges.append(edge)
        return new_nodes, new_edges

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def nodes(self) -> List[Node]:
        return list(self._nodes.values())

    @property
    def discovered_ids(self) -> Set[str]:
        return set(self._discovered)

    def get_node(self, node_id: str) -> Optional[Node]:
        return self._nodes.get(node_id)

    def undiscovered_nodes(self) -> List[Node]:
        return [n for n in self._nodes.values() if not n.discovered]

    def neighbours(self, node_id: str) -> List[Node]:
        """Nodes linked to *node_id* by at least one edge, in edge order."""
        seen: List[str] = []
        for edge in self.edges:
            src, dst = ref_id(edge.source), ref_id(edge.target)
            other = dst if src == node_id else src if dst == node_id else None
            if other is not None and other not in seen:
                seen.append(other)
        return [self._nodes[i] for i in seen if i in self._nodes]

    def resolved_edges(self) -> List[Tuple[Node, Node]]:
        """Edges with endpoints resolved to node objects, for rendering.

        The canonical edges are left untouched; endpoints that do not match
        a node are dropped from the view.
        """
        pairs = []
        for edge in self.edges:
            src = self._nodes.get(ref_id(edge.source))
            dst = self._nodes.get(ref_id(edge.target))
            if src is not None and dst is not None:
                pairs.append((src, dst))
        return pairs

    def to_persisted(self) -> Dict[str, List[Dict[str, Any]]]:
        """Serialisable form with every edge endpoint reduced to its id."""
        return {
            'nodes': [n.to_dict() for n in self._nodes.values()],
            'edges': [e.to_dict() for e in self.edges],
        }

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __iter__(self) -> Iterator[Node]:
        return iter(list(self._nodes.values()))

    def __repr__(self) -> str:
        return (f"DiscoveryGraph(nodes={len(self._nodes)}, edges={len(self.edges)}, "
                f"discovered={len(self._discovered)})")
