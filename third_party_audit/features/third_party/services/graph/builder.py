"""
Dependency graph construction.

One node per discovered service, typed edges inferred from the catalog's
declared dependencies, conflicts and CDN fallbacks, then advisory clusters
and derived statistics. Edge inference is pattern lookup only; nothing the
page loads is ever executed.
"""
import hashlib
import re
from typing import Dict, List, Optional, Sequence, Set, Tuple
from urllib.parse import urlparse

from pydantic import ValidationError

from third_party_audit.features.third_party.schemas.graph import (
    Cluster,
    ClusterType,
    DependencyEdge,
    DependencyGraph,
    EdgeType,
    GraphStatistics,
    ServiceNode,
)
from third_party_audit.features.third_party.schemas.resources import IdentifiedService
from third_party_audit.features.third_party.services.graph.analyzer import weakly_connected_components
from third_party_audit.platform.logger import get_logger

logger = get_logger(__name__)

REQUIRED_WEIGHT = 2.0
CONFLICT_WEIGHT = -1.0
FALLBACK_WEIGHT = 0.5


def service_node_id(resource_type: str, url: Optional[str], name: Optional[str] = None) -> str:
    """Deterministic id from the resource type and its URL (or name when it has none)."""
    key = url or name or ""
    digest = hashlib.sha1(f"{resource_type}|{key}".encode("utf-8")).hexdigest()[:12]
    return f"{resource_type}_{digest}"


def is_graphable_url(url: Optional[str]) -> bool:
    """Relative URLs and http(s) URLs with a host can become graph nodes."""
    if not url:
        return True
    try:
        parsed = urlparse(url)
        host = parsed.hostname
    except ValueError:
        return False
    return not parsed.scheme or (parsed.scheme in ("http", "https") and bool(host))


def graph_statistics(
    nodes: Sequence[ServiceNode],
    edges: Sequence[DependencyEdge],
    clusters: Sequence[Cluster],
) -> GraphStatistics:
    node_count = len(nodes)
    edge_count = len(edges)
    return GraphStatistics(
        node_count=node_count,
        edge_count=edge_count,
        cluster_count=len(clusters),
        average_degree=(2 * edge_count) / node_count if node_count else 0.0,
        density=edge_count / (node_count * (node_count - 1)) if node_count > 1 else 0.0,
    )


class DependencyGraphBuilder:
    def build(self, services: Sequence[IdentifiedService]) -> DependencyGraph:
        nodes: List[ServiceNode] = []
        members: List[Tuple[ServiceNode, IdentifiedService]] = []
        seen_ids: Set[str] = set()

        for service in services:
            try:
                node = self._create_node(service)
            except (ValueError, ValidationError) as e:
                logger.warning(f"Skipping resource {service.url!r} while building graph: {e}")
                continue
            if node.id in seen_ids:
                # Same resource referenced twice in one document
                continue
            seen_ids.add(node.id)
            nodes.append(node)
            members.append((node, service))

        edges = self._infer_edges(members)
        clusters = self._identify_clusters(nodes, edges)
        return DependencyGraph(
            nodes=nodes,
            edges=edges,
            clusters=clusters,
            statistics=graph_statistics(nodes, edges, clusters),
        )

    def _create_node(self, service: IdentifiedService) -> ServiceNode:
        resource = service.resource
        if not is_graphable_url(resource.url):
            raise ValueError(f"unsupported URL {resource.url!r}")
        return ServiceNode(
            id=service_node_id(resource.type, resource.url, service.name),
            name=service.name,
            type=resource.type,
            category=service.category,
            url=resource.url,
            loading_pattern=resource.loading_pattern,
            critical=resource.render_blocking or bool(service.known and service.known.critical),
        )

    def _infer_edges(self, members: Sequence[Tuple[ServiceNode, IdentifiedService]]) -> List[DependencyEdge]:
        edges: List[DependencyEdge] = []
        seen: Set[Tuple[str, str, str]] = set()

        def add(source: ServiceNode, target: Optional[ServiceNode], edge_type: EdgeType, weight: float):
            if target is None or target.id == source.id:
                return
            key = (source.id, target.id, edge_type.value)
            if key in seen:
                return
            seen.add(key)
            edges.append(DependencyEdge(source=source.id, target=target.id, type=edge_type, weight=weight))

        for node, service in members:
            known = service.known
            if known is None:
                continue

            for dependency in known.dependencies:
                pattern = re.compile(re.escape(dependency), re.IGNORECASE)
                add(node, self._first_match(members, node, lambda url: bool(pattern.search(url))),
                    EdgeType.required, REQUIRED_WEIGHT)

            for conflict in known.conflicts:
                needle = conflict.lower()
                add(node, self._first_match(members, node, lambda url: needle in url.lower()),
                    EdgeType.conflicting, CONFLICT_WEIGHT)

            for fallback in getattr(known, "fallbacks", ()):
                needle = fallback.lower()
                add(node, self._first_match(members, node, lambda url: needle in url.lower()),
                    EdgeType.fallback, FALLBACK_WEIGHT)

        return edges

    @staticmethod
    def _first_match(members, source: ServiceNode, predicate) -> Optional[ServiceNode]:
        for candidate, _ in members:
            if candidate.id == source.id or candidate.name == source.name or not candidate.url:
                continue
            if predicate(candidate.url):
                return candidate
        return None

    def _identify_clusters(self, nodes: Sequence[ServiceNode], edges: Sequence[DependencyEdge]) -> List[Cluster]:
        clusters: List[Cluster] = []

        by_category: Dict[str, List[str]] = {}
        for node in nodes:
            by_category.setdefault(node.category or "other", []).append(node.id)
        for category, node_ids in by_category.items():
            if len(node_ids) > 1:
                clusters.append(
                    Cluster(id=f"cluster_{category}", name=category, nodes=node_ids, type=ClusterType.category)
                )

        components = weakly_connected_components([node.id for node in nodes], edges)
        for index, component in enumerate(c for c in components if len(c) > 1):
            clusters.append(
                Cluster(
                    id=f"cluster_connected_{index}",
                    name=f"Connected Component {index + 1}",
                    nodes=component,
                    type=ClusterType.connected,
                )
            )
        return clusters
