"""
Dependency Graph Schemas

Nodes, typed edges and advisory clusters produced by the graph builder.
"""
from enum import Enum
from typing import List

from pydantic import Field

from third_party_audit.features.third_party.schemas.base import CamelModel


class LoadingPattern(str, Enum):
    blocking = "blocking"
    async_ = "async"
    defer = "defer"
    dynamic = "dynamic"
    lazy = "lazy"


class EdgeType(str, Enum):
    required = "required"
    optional = "optional"
    conflicting = "conflicting"
    enhancing = "enhancing"
    fallback = "fallback"


class ClusterType(str, Enum):
    category = "category"
    connected = "connected"


class ServiceNode(CamelModel):
    id: str
    name: str
    type: str
    category: str
    url: str
    loading_pattern: LoadingPattern
    critical: bool = False


class DependencyEdge(CamelModel):
    source: str = Field(alias="from")
    target: str = Field(alias="to")
    type: EdgeType
    weight: float = 1.0


class Cluster(CamelModel):
    id: str
    name: str
    nodes: List[str]
    type: ClusterType


class GraphStatistics(CamelModel):
    node_count: int = 0
    edge_count: int = 0
    cluster_count: int = 0
    average_degree: float = 0.0
    density: float = 0.0


class DependencyGraph(CamelModel):
    nodes: List[ServiceNode] = Field(default_factory=list)
    edges: List[DependencyEdge] = Field(default_factory=list)
    clusters: List[Cluster] = Field(default_factory=list)
    statistics: GraphStatistics = Field(default_factory=GraphStatistics)

    def node_ids(self) -> List[str]:
        return [node.id for node in self.nodes]
