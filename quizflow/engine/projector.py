"""
Graph Projection for the flow builder.

Turns a category's steps, options and conditions into the node/edge shape a
node-graph widget renders, and takes local `connect` edits back from it.
Edits stay in memory; nothing here writes to the store.
"""

from typing import Dict, List, Mapping, Optional, Sequence, Tuple
from pydantic import BaseModel, Field
import asyncio
import logging
import re

from quizflow.engine.models import Condition, Option, Step
from quizflow.storage.base import FlowStore


logger = logging.getLogger(__name__)

DEFAULT_NODE_SPACING = 300
DEFAULT_ROW_Y = 0

STEP_NODE_TYPE = "step"
EDGE_TYPE = "smoothstep"


class Position(BaseModel):
    x: float
    y: float


class StepNodeData(BaseModel):
    """Payload rendered inside a step node; each option is an outgoing handle."""
    title: str
    description: Optional[str] = ""
    order_index: int
    is_conditional: bool = False
    parent_option_id: Optional[str] = None
    options: List[Option] = Field(default_factory=list)


class FlowNode(BaseModel):
    id: str
    type: str = STEP_NODE_TYPE
    position: Position
    data: StepNodeData


class FlowEdge(BaseModel):
    """
    An edge from an option handle to a step node.

    `source` is the option id, not the step: edges leave from the option's
    handle. `source_node` names the owning step when it is known.
    """
    id: str
    source: str
    target: str
    source_handle: Optional[str] = None
    source_node: Optional[str] = None
    type: str = EDGE_TYPE
    animated: bool = True


class FlowGraph(BaseModel):
    nodes: List[FlowNode] = Field(default_factory=list)
    edges: List[FlowEdge] = Field(default_factory=list)


def project(
    steps: Sequence[Step],
    options_by_step_id: Mapping[str, Sequence[Option]],
    conditions: Sequence[Condition],
    spacing: float = DEFAULT_NODE_SPACING,
    row_y: float = DEFAULT_ROW_Y,
) -> FlowGraph:
    """
    Project relational flow entities onto a node/edge graph.

    One node per step, placed left to right at `index * spacing`; one edge per
    condition. Conditions pointing at steps outside `steps` still yield an
    edge with an unresolved endpoint.

    Args:
        steps: Steps ordered by order_index
        options_by_step_id: step_id -> options of that step
        conditions: Conditions to draw as edges

    Returns:
        The projected FlowGraph
    """
    owner_by_option = {
        option.id: step_id
        for step_id, options in options_by_step_id.items()
        for option in options
    }

    nodes = [
        FlowNode(
            id=step.id,
            position=Position(x=index * spacing, y=row_y),
            data=StepNodeData(
                title=step.title,
                description=step.description,
                order_index=step.order_index,
                is_conditional=step.is_conditional,
                parent_option_id=step.parent_option_id,
                options=list(options_by_step_id.get(step.id, [])),
            ),
        )
        for index, step in enumerate(steps)
    ]

    edges = [
        FlowEdge(
            id=condition.id,
            source=condition.option_id,
            target=condition.next_step_id,
            source_handle=condition.option_id,
            source_node=owner_by_option.get(condition.option_id),
        )
        for condition in conditions
    ]

    return FlowGraph(nodes=nodes, edges=edges)


def local_edge_id(source_handle_id: str, target_node_id: str) -> str:
    """Edge id for a connection drawn in the editor."""
    return f"reactflow__edge-{source_handle_id}-{target_node_id}"


def connect(graph: FlowGraph, source_handle_id: str, target_node_id: str) -> FlowGraph:
    """
    Append an edge for a connection drawn in the editor.

    Endpoints are not validated. Drawing the same connection twice keeps a
    single edge.
    """
    for edge in graph.edges:
        if edge.source == source_handle_id and edge.target == target_node_id:
            return graph

    owner = next(
        (node.id for node in graph.nodes
         if any(option.id == source_handle_id for option in node.data.options)),
        None,
    )
    edge = FlowEdge(
        id=local_edge_id(source_handle_id, target_node_id),
        source=source_handle_id,
        target=target_node_id,
        source_handle=source_handle_id,
        source_node=owner,
    )
    return graph.model_copy(update={"edges": graph.edges + [edge]})


def _mermaid_id(raw: str) -> str:
    return "n_" + re.sub(r"[^A-Za-z0-9_]", "_", raw)


def _mermaid_label(text: str) -> str:
    return (text or "").replace('"', "#quot;")


def to_mermaid(graph: FlowGraph) -> str:
    """Generate a Mermaid diagram of the projected graph."""
    lines = ["graph LR"]
    node_ids = {node.id for node in graph.nodes}
    option_titles: Dict[str, str] = {}

    for node in graph.nodes:
        label = _mermaid_label(node.data.title)
        if node.data.is_conditional:
            lines.append(f'    {_mermaid_id(node.id)}{{"{label}"}}')
        else:
            lines.append(f'    {_mermaid_id(node.id)}["{label}"]')
        for option in node.data.options:
            option_titles[option.id] = option.title

    for edge in graph.edges:
        if edge.source_node is not None:
            source = _mermaid_id(edge.source_node)
        else:
            source = _mermaid_id(edge.source)
            lines.append(f'    {source}(("{_mermaid_label(edge.source)}"))')
        if edge.target not in node_ids:
            lines.append(f'    {_mermaid_id(edge.target)}(("?"))')

        label = _mermaid_label(option_titles.get(edge.source, edge.source))
        lines.append(f'    {source} -->|"{label}"| {_mermaid_id(edge.target)}')

    return "\n".join(lines)


class GraphProjector:
    """
    Authoring-side view of one category.

    Holds the projected graph for a builder session and applies local
    connections to it. The graph is replaced, never mutated in place, and
    local connections are re-applied whenever the category is reloaded.
    """

    def __init__(
        self,
        store: FlowStore,
        spacing: float = DEFAULT_NODE_SPACING,
        row_y: float = DEFAULT_ROW_Y,
    ):
        self.store = store
        self.spacing = spacing
        self.row_y = row_y
        self.category_id: Optional[str] = None
        self.graph = FlowGraph()
        self._local_connections: List[Tuple[str, str]] = []

    async def load(self, category_id: str) -> FlowGraph:
        """
        Fetch a category's entities and project them.

        Options are fetched per step concurrently. The condition listing is
        unfiltered, so only conditions touching this category are kept.
        """
        steps = await self.store.list_steps(category_id)
        option_lists = await asyncio.gather(
            *(self.store.list_options(step.id) for step in steps)
        )
        options_by_step_id = {step.id: list(options) for step, options in zip(steps, option_lists)}

        step_ids = {step.id for step in steps}
        option_ids = {option.id for options in option_lists for option in options}
        conditions = [
            c for c in await self.store.list_conditions()
            if c.option_id in option_ids or c.next_step_id in step_ids
        ]

        if category_id != self.category_id:
            self._local_connections = []
        self.category_id = category_id

        graph = project(steps, options_by_step_id, conditions, self.spacing, self.row_y)
        for source_handle_id, target_node_id in self._local_connections:
            graph = connect(graph, source_handle_id, target_node_id)
        self.graph = graph
        logger.info(
            f"Projected category '{category_id}': "
            f"{len(self.graph.nodes)} nodes, {len(self.graph.edges)} edges"
        )
        return self.graph

    def connect(self, source_handle_id: str, target_node_id: str) -> FlowGraph:
        """Add a local, unpersisted edge from an option handle to a step."""
        pair = (source_handle_id, target_node_id)
        if pair not in self._local_connections:
            self._local_connections.append(pair)
        self.graph = connect(self.graph, source_handle_id, target_node_id)
        return self.graph

    def to_mermaid(self) -> str:
        return to_mermaid(self.graph)
