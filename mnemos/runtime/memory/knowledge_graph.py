"""
Knowledge Graph - In-process concept graph with semantic search

WHAT: Nodes/edges/clusters store with merge, similarity search, BFS paths, statistics
WHERE: mnemos/runtime/memory/knowledge_graph.py - graph layer under the event pipeline
WHO: Event processors merging extractions; callers querying code knowledge
TIME: Merge O(n²) (cluster recompute), search O(n·d), path O(V+E)

The graph exclusively owns its node, edge and cluster maps; ``add_to_graph``
and ``clear`` are the only mutators of those maps and neither suspends, so on
a single event loop a merge is never interleaved with another merge or a
query. Reads update ``access_count``/``last_accessed`` on the returned nodes.

Search ordering: similarity descending, ties by node id ascending.
"""

from __future__ import annotations

import logging
import math
from collections import Counter, deque
from dataclasses import replace
from typing import Any, Deque, Dict, List, Optional, Sequence

import numpy as np

from ...config.settings import GraphConfig
from ...embedders import EmbedderBase, cosine_similarity, create_embedder
from .models import (
    Complexity,
    ConceptCluster,
    ConceptEdge,
    Entity,
    ExtractionResult,
    GraphStatistics,
    KnowledgeNode,
    NodeMetadata,
    NodeType,
    SearchFilter,
    SearchOptions,
    SearchResult,
)
from .signals import Signal, SignalHub

logger = logging.getLogger(__name__)

ENTITY_NODE_TYPES: Dict[str, NodeType] = {
    "function": "function",
    "class": "class",
    "variable": "pattern",
    "concept": "concept",
    "business_logic": "concept",
    "preference": "pattern",
    "team_pattern": "pattern",
}

NODE_COLORS: Dict[str, str] = {
    "function": "#4CAF50",
    "class": "#2196F3",
    "module": "#FF9800",
    "concept": "#9C27B0",
    "pattern": "#00BCD4",
}
EDGE_COLORS: Dict[str, str] = {
    "implements": "#4CAF50",
    "extends": "#2196F3",
    "uses": "#FF9800",
    "depends_on": "#F44336",
    "similar_to": "#9C27B0",
}
DEFAULT_NODE_COLOR = "#757575"
DEFAULT_EDGE_COLOR = "#9E9E9E"

_MISSING = object()


def node_type_for(entity: Entity) -> NodeType:
    if entity.attributes.get("kind") == "module":
        return "module"
    return ENTITY_NODE_TYPES.get(entity.type, "concept")


def assess_complexity(text: str) -> Complexity:
    if len(text) < 20:
        return "low"
    if len(text) < 50:
        return "medium"
    return "high"


def _resolve_field(node: KnowledgeNode, name: str) -> Any:
    value = getattr(node, name, _MISSING)
    if value is _MISSING:
        value = getattr(node.metadata, name, None)
    return value


def passes_filters(node: KnowledgeNode, filters: Sequence[SearchFilter]) -> bool:
    """Apply ``eq|neq|gt|lt|contains|in`` filters; incomparable values fail the filter."""
    for flt in filters:
        value = _resolve_field(node, flt.field)
        op = flt.operator
        try:
            if op == "eq":
                ok = value == flt.value
            elif op == "neq":
                ok = value != flt.value
            elif op == "gt":
                ok = value is not None and value > flt.value
            elif op == "lt":
                ok = value is not None and value < flt.value
            elif op == "contains":
                ok = str(flt.value) in str(value)
            elif op == "in":
                ok = isinstance(flt.value, (list, tuple, set, frozenset)) and value in flt.value
            else:
                raise ValueError(f"Unsupported filter operator: {op}")
        except TypeError:
            ok = False
        if not ok:
            return False
    return True


class KnowledgeGraph:
    """Concept graph built from extraction results."""

    def __init__(
        self,
        embedder: Optional[EmbedderBase] = None,
        *,
        config: Optional[GraphConfig] = None,
    ) -> None:
        self.embedder = embedder or create_embedder()
        self.config = config or GraphConfig()
        self.signals = SignalHub()
        self._nodes: Dict[str, KnowledgeNode] = {}
        self._edges: Dict[str, ConceptEdge] = {}
        self._clusters: List[ConceptCluster] = []

    # ------------------ introspection ------------------
    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    @property
    def clusters(self) -> tuple[ConceptCluster, ...]:
        return tuple(self._clusters)

    def get_node(self, node_id: str) -> Optional[KnowledgeNode]:
        node = self._nodes.get(node_id)
        if node is not None:
            node.touch()
        return node

    def edges_for(self, node_id: str) -> List[ConceptEdge]:
        return [edge for edge in self._edges.values() if edge.touches(node_id)]

    # ------------------ merge ------------------
    def add_to_graph(self, extraction: ExtractionResult) -> Dict[str, int]:
        """Upsert nodes and edges from ``extraction`` and recompute clusters."""

        batch_ids = {entity.id for entity in extraction.entities}
        for entity in extraction.entities:
            self._nodes[entity.id] = KnowledgeNode(
                id=entity.id,
                type=node_type_for(entity),
                name=entity.text,
                content=entity.text,
                embedding=list(entity.embedding or []),
                confidence=extraction.confidence,
                access_count=1,
                metadata=NodeMetadata(
                    complexity=assess_complexity(entity.text),
                    quality=extraction.confidence,
                    relevance=1.0,
                ),
            )

        edges_added = 0
        for rel in extraction.relationships:
            endpoints = (rel.source_entity_id, rel.target_entity_id)
            dangling = [eid for eid in endpoints if eid not in batch_ids and eid not in self._nodes]
            if dangling:
                logger.warning(f"Skipping relationship {rel.id} ({rel.type}): unknown endpoints {dangling}")
                continue
            self._edges[rel.id] = ConceptEdge(
                id=rel.id,
                source_id=rel.source_entity_id,
                target_id=rel.target_entity_id,
                type=rel.type,
                weight=rel.confidence,
                confidence=rel.confidence,
                bidirectional=rel.bidirectional,
            )
            edges_added += 1

        self._clusters = self._compute_clusters()

        payload = {
            "nodes_added": len(extraction.entities),
            "edges_added": edges_added,
            "total_nodes": len(self._nodes),
            "total_edges": len(self._edges),
        }
        logger.debug(f"Graph updated: {payload}")
        self.signals.emit(Signal.GRAPH_UPDATED, dict(payload))
        return payload

    def clear(self) -> None:
        self._nodes.clear()
        self._edges.clear()
        self._clusters = []
        logger.info("Knowledge graph cleared")

    def _compute_clusters(self) -> List[ConceptCluster]:
        threshold = self.config.cluster_threshold
        nodes = list(self._nodes.values())
        assigned: set[str] = set()
        clusters: List[ConceptCluster] = []

        for seed in nodes:
            if seed.id in assigned:
                continue
            assigned.add(seed.id)
            members = [seed]
            if seed.embedding:
                for other in nodes:
                    if other.id in assigned or not other.embedding:
                        continue
                    if cosine_similarity(seed.embedding, other.embedding) >= threshold:
                        members.append(other)
                        assigned.add(other.id)
            clusters.append(self._build_cluster(len(clusters), seed, members))
        return clusters

    @staticmethod
    def _build_cluster(index: int, seed: KnowledgeNode, members: List[KnowledgeNode]) -> ConceptCluster:
        vectors = [m.embedding for m in members if m.embedding]
        if vectors and len({len(v) for v in vectors}) == 1:
            centroid = np.mean(np.asarray(vectors, dtype=np.float64), axis=0).tolist()
        else:
            centroid = list(seed.embedding)
        if len(members) > 1:
            coherence = float(np.mean([cosine_similarity(v, centroid) for v in vectors]))
        else:
            coherence = 1.0
        return ConceptCluster(
            id=f"cluster_{index}",
            name=f"Cluster_{seed.name}",
            node_ids=[m.id for m in members],
            centroid=centroid,
            coherence=coherence,
        )

    # ------------------ queries ------------------
    async def search(self, options: SearchOptions | str | None = None, **kwargs: Any) -> List[SearchResult]:
        """Rank embedded nodes by cosine similarity to ``options.query``.

        Accepts a ``SearchOptions`` instance, or the query string plus keyword
        options (``top_k``, ``min_similarity``, ``filters``, ``include_relationships``).
        """

        opts = self._coerce_options(options, kwargs)
        if not self._nodes:
            return []

        query_embedding = await self.embedder.embed(opts.query)
        scored: List[SearchResult] = []
        for node in self._nodes.values():
            if not node.embedding:
                continue
            similarity = cosine_similarity(query_embedding, node.embedding)
            if similarity < opts.min_similarity:
                continue
            if opts.filters and not passes_filters(node, opts.filters):
                continue
            scored.append(SearchResult(node=node, similarity=similarity))

        scored.sort(key=lambda r: (-r.similarity, r.node.id))
        results = scored[: max(opts.top_k, 0)]
        for result in results:
            result.node.touch()
            if opts.include_relationships:
                result.relationships = self.edges_for(result.node.id)
        return results

    def _coerce_options(self, options: SearchOptions | str | None, kwargs: Dict[str, Any]) -> SearchOptions:
        if isinstance(options, SearchOptions):
            return replace(options, **kwargs) if kwargs else options
        query = options if isinstance(options, str) else kwargs.pop("query", None)
        if query is None:
            raise ValueError("search requires a query")
        kwargs.setdefault("top_k", self.config.default_top_k)
        kwargs.setdefault("min_similarity", self.config.default_min_similarity)
        filters = kwargs.pop("filters", None) or []
        kwargs["filters"] = [f if isinstance(f, SearchFilter) else SearchFilter(**f) for f in filters]
        return SearchOptions(query=query, **kwargs)

    def find_path(self, source_id: str, target_id: str) -> Optional[List[KnowledgeNode]]:
        """Breadth-first shortest path; bidirectional edges may be walked in reverse."""

        if source_id not in self._nodes or target_id not in self._nodes:
            return None

        adjacency: Dict[str, List[str]] = {}
        for edge in self._edges.values():
            adjacency.setdefault(edge.source_id, []).append(edge.target_id)
            if edge.bidirectional:
                adjacency.setdefault(edge.target_id, []).append(edge.source_id)

        parents: Dict[str, Optional[str]] = {source_id: None}
        queue: Deque[str] = deque([source_id])
        while queue:
            current = queue.popleft()
            if current == target_id:
                path_ids: List[str] = []
                step: Optional[str] = current
                while step is not None:
                    path_ids.append(step)
                    step = parents[step]
                path = [self._nodes[nid] for nid in reversed(path_ids)]
                for node in path:
                    node.touch()
                return path
            for nxt in adjacency.get(current, ()):
                if nxt not in parents and nxt in self._nodes:
                    parents[nxt] = current
                    queue.append(nxt)
        return None

    def get_statistics(self) -> GraphStatistics:
        n = len(self._nodes)
        total_degree = 0
        for edge in self._edges.values():
            # a self-loop adds one to its node's degree
            total_degree += len({edge.source_id, edge.target_id} & self._nodes.keys())
        density = len(self._edges) / (n * (n - 1) / 2) if n >= 2 else 0.0
        return GraphStatistics(
            total_nodes=n,
            total_edges=len(self._edges),
            total_clusters=len(self._clusters),
            node_types=dict(Counter(node.type for node in self._nodes.values())),
            edge_types=dict(Counter(edge.type for edge in self._edges.values())),
            average_degree=total_degree / n if n else 0.0,
            density=density,
        )

    def export_for_visualization(self) -> Dict[str, List[Dict[str, Any]]]:
        """Read-only projection of the graph for renderers."""

        nodes = [
            {
                "id": node.id,
                "label": node.name,
                "type": node.type,
                "size": math.log(node.access_count + 1) * 10,
                "color": NODE_COLORS.get(node.type, DEFAULT_NODE_COLOR),
            }
            for node in self._nodes.values()
        ]
        edges = [
            {
                "id": edge.id,
                "source": edge.source_id,
                "target": edge.target_id,
                "type": edge.type,
                "weight": edge.weight,
                "color": EDGE_COLORS.get(edge.type, DEFAULT_EDGE_COLOR),
            }
            for edge in self._edges.values()
        ]
        clusters = [
            {
                "id": cluster.id,
                "name": cluster.name,
                "node_ids": list(cluster.node_ids),
                "centroid": list(cluster.centroid),
                "coherence": cluster.coherence,
            }
            for cluster in self._clusters
        ]
        return {"nodes": nodes, "edges": edges, "clusters": clusters}


__all__ = [
    "ENTITY_NODE_TYPES",
    "KnowledgeGraph",
    "assess_complexity",
    "node_type_for",
    "passes_filters",
]
