"""
Graph resolution: expand seed components into the set to isolate.

In seeders-only mode the seeds are fetched directly and any unknown seed
fails the call. Otherwise the graph builder provides the transitive
successor subgraph, and every node is checked against the component host.
Nodes the host does not know (typically satisfied by an external package
registry instead) are dropped, keeping the order of the survivors.
"""

import logging
from collections.abc import Sequence

from isolator.collaborators import ComponentHost, GraphBuilder
from isolator.concurrency import CancellationToken, run_parallel
from isolator.schema import Component, ComponentID

logger = logging.getLogger(__name__)


class GraphResolver:
    """
    Resolves seeds to the ordered list of components to isolate.

    Attributes:
        host: Component host used to fetch and confirm components
        graph_builder: Builds the dependency graph of the seeds
        max_workers: Thread pool size for the existence check
    """

    def __init__(
        self,
        host: ComponentHost,
        graph_builder: GraphBuilder,
        max_workers: int | None = None,
    ) -> None:
        self.host = host
        self.graph_builder = graph_builder
        self.max_workers = max_workers

    def resolve(
        self,
        seeds: Sequence[ComponentID],
        seeders_only: bool = False,
        cancel_token: CancellationToken | None = None,
    ) -> list[Component]:
        """
        Resolve seeds to components.

        Raises:
            ComponentNotFoundError: In seeders-only mode, for an unknown seed
        """
        if seeders_only:
            return self.host.get_many(seeds)
        return self.create_graph(seeds, cancel_token)

    def create_graph(
        self,
        seeds: Sequence[ComponentID],
        cancel_token: CancellationToken | None = None,
    ) -> list[Component]:
        graph = self.graph_builder.get_graph(seeds)
        subgraph = graph.successors_subgraph([seed.to_string() for seed in seeds])
        nodes = subgraph.nodes

        # the version is not ignored: a component may exist in the workspace
        # with one version and be installed as a package with another
        existing = run_parallel(
            lambda component: self.host.has_id(component.id),
            nodes,
            phase="existence-check",
            cancel_token=cancel_token,
            max_workers=self.max_workers,
        )
        components = [component for component, found in zip(nodes, existing) if found]
        dropped = len(nodes) - len(components)
        if dropped:
            logger.debug("dropped %d graph nodes unknown to the component host", dropped)
        return components
