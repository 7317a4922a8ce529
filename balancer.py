"""Port and material invariants for balancer nodes.

A balancer starts with one port per side and no material. The first accepted
connection locks its material; each port takes exactly one edge; connecting
the last free port on a side grows that side by one, up to
MAX_BALANCER_PORTS. Nothing here mutates a node in place: the editor asks
for the events a connection implies and applies them to its own table.
"""

from dataclasses import dataclass

from graph import MAX_BALANCER_PORTS, BalancerNode, PortSide


@dataclass(frozen=True)
class CandidateEdge:
    """A proposed edge as seen from one balancer port."""

    side: PortSide
    port: int
    material: str | None


@dataclass(frozen=True)
class MaterialLocked:
    node_id: str
    material: str


@dataclass(frozen=True)
class PortConnected:
    node_id: str
    side: PortSide
    port: int


@dataclass(frozen=True)
class PortsGrown:
    node_id: str
    side: PortSide
    ports: int


BalancerEvent = MaterialLocked | PortConnected | PortsGrown


def _port_is_free(candidate: CandidateEdge, balancer: BalancerNode) -> bool:
    """Check the candidate port exists and has no edge yet.

    Precondition:
        candidate.side is a PortSide

    Postcondition:
        returns False for out-of-range ports and for connected ports
    """
    if not 0 <= candidate.port < balancer.ports(candidate.side):
        return False
    return not balancer.connected(candidate.side)[candidate.port]


def _material_is_acceptable(candidate: CandidateEdge, balancer: BalancerNode) -> bool:
    """Check the candidate material against the balancer's lock.

    Precondition:
        balancer.material is None or a material name

    Postcondition:
        returns False when the candidate carries no material
        returns True for any material while the balancer is unlocked
        returns True only for the locked material otherwise
    """
    if candidate.material is None:
        return False
    if balancer.material is None:
        return True
    return candidate.material == balancer.material


def is_valid_balancer_connection(candidate: CandidateEdge, balancer: BalancerNode) -> bool:
    """Decide whether a proposed edge may attach to a balancer port.

    Precondition:
        candidate describes one end of a proposed edge on this balancer
        candidate.material is the material the edge would carry

    Postcondition:
        returns True iff the port exists, is unconnected, and the material
        matches the balancer's locked material (or the balancer is unlocked)
        balancer is not modified

    Args:
        candidate: side, port index and material of the proposed edge
        balancer: current balancer state

    Returns:
        True if the editor may accept the edge
    """
    return _port_is_free(candidate, balancer) and _material_is_acceptable(candidate, balancer)


def plan_balancer_connection(candidate: CandidateEdge, balancer: BalancerNode) -> list[BalancerEvent]:
    """List the state changes accepting a connection implies.

    Precondition:
        is_valid_balancer_connection(candidate, balancer) is True

    Postcondition:
        returns, in order: a MaterialLocked event if the balancer had no
        material, a PortConnected event, and a PortsGrown event when the
        connected port is the last one on its side and the side is below
        MAX_BALANCER_PORTS

    Args:
        candidate: the accepted edge end
        balancer: current balancer state

    Returns:
        list of events for apply_balancer_event

    Raises:
        ValueError: if the connection is not valid
    """
    if not is_valid_balancer_connection(candidate, balancer):
        raise ValueError(
            f"Balancer {balancer.id} cannot accept {candidate.material} "
            f"on {candidate.side.value} port {candidate.port}"
        )

    events: list[BalancerEvent] = []
    if balancer.material is None:
        events.append(MaterialLocked(balancer.id, candidate.material))
    events.append(PortConnected(balancer.id, candidate.side, candidate.port))

    ports = balancer.ports(candidate.side)
    if candidate.port == ports - 1 and ports < MAX_BALANCER_PORTS:
        events.append(PortsGrown(balancer.id, candidate.side, ports + 1))
    return events


def apply_balancer_event(balancer: BalancerNode, event: BalancerEvent) -> BalancerNode:
    """Return a copy of the balancer with one event applied.

    Precondition:
        event.node_id == balancer.id

    Postcondition:
        MaterialLocked sets the material and zeroed rate records
        PortConnected marks the port connected
        PortsGrown extends the side to event.ports unconnected-padded ports
        the given balancer is not modified

    Args:
        balancer: current state
        event: event from plan_balancer_connection

    Returns:
        updated copy

    Raises:
        ValueError: if the event would relock the material, reconnect a
            port, shrink a side or exceed MAX_BALANCER_PORTS
    """
    if event.node_id != balancer.id:
        raise ValueError(f"Event for {event.node_id} applied to {balancer.id}")
    updated = balancer.copy()

    if isinstance(event, MaterialLocked):
        if updated.material is not None and updated.material != event.material:
            raise ValueError(f"Balancer {balancer.id} is already locked to {updated.material}")
        updated.material = event.material
        updated.inputs.setdefault(event.material, 0.0)
        updated.outputs.setdefault(event.material, 0.0)
    elif isinstance(event, PortConnected):
        flags = updated.connected(event.side)
        if flags[event.port]:
            raise ValueError(f"Balancer {balancer.id} {event.side.value} port {event.port} is already connected")
        flags[event.port] = True
    elif isinstance(event, PortsGrown):
        if not updated.ports(event.side) <= event.ports <= MAX_BALANCER_PORTS:
            raise ValueError(f"Balancer {balancer.id} cannot have {event.ports} {event.side.value} ports")
        flags = updated.connected(event.side)
        flags.extend([False] * (event.ports - len(flags)))
        if event.side is PortSide.INPUT:
            updated.input_ports = event.ports
        else:
            updated.output_ports = event.ports
    return updated


def apply_balancer_events(balancer: BalancerNode, events: list[BalancerEvent]) -> BalancerNode:
    """Apply events in order; see apply_balancer_event."""
    for event in events:
        balancer = apply_balancer_event(balancer, event)
    return balancer


def free_port(balancer: BalancerNode, side: PortSide) -> int | None:
    """Index of the first unconnected port on a side, or None when all are taken."""
    for index, connected in enumerate(balancer.connected(side)):
        if not connected:
            return index
    return None
