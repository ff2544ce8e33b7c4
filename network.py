"""
Intcode Packet Network
======================
Wires together N Intcode VMs running the same NIC program, round-robin
stepping, and a controller-owned routing table.  Nodes never touch one
another: every packet leaves a node as three output cells
``(dest, x, y)``, sits in the destination's RX queue until the end of
the round, and is then fed in as two input cells.

Node *i* boots with inputs ``[i, -1]``.  A node with nothing to receive
is fed ``-1`` each round.

NAT: packets addressed to ``nat_address`` are held by the controller
(only the latest is kept).  When a full round routes no packet between
nodes the network is idle, and the NAT's packet is delivered to node 0.
"""

from __future__ import annotations
import logging
from collections import deque
from typing import Optional, Sequence, Union

from intcode import IntcodeVM, Tape

LOGGER = logging.getLogger("intcode.network")

# ---------------------------------------------------------------------------
#  Constants
# ---------------------------------------------------------------------------

DEFAULT_SIZE = 50
NAT_ADDRESS = 255
NO_PACKET = -1
PACKET_CELLS = 3

# ---------------------------------------------------------------------------
#  Errors
# ---------------------------------------------------------------------------

class NetworkError(Exception):
    pass

class RoutingError(NetworkError):
    def __init__(self, src: int, dest: int):
        self.src = src
        self.dest = dest
        super().__init__(f"Node {src} sent a packet to unknown address {dest}")

# ---------------------------------------------------------------------------
#  Network
# ---------------------------------------------------------------------------

class PacketNetwork:

    def __init__(self, program: Union[str, Sequence[int]],
                 size: int = DEFAULT_SIZE,
                 nat_address: int = NAT_ADDRESS,
                 max_rounds: int = 100_000):
        if size < 1:
            raise ValueError(f"Network needs at least one node, got {size}")
        if 0 <= nat_address < size:
            raise ValueError(f"NAT address {nat_address} collides with a node")

        tape = Tape.load(program) if isinstance(program, str) else Tape(program)
        self.size = size
        self.nat_address = nat_address
        self.max_rounds = max_rounds

        self.nodes: list[IntcodeVM] = []
        for addr in range(size):
            vm = IntcodeVM.from_tape(tape)
            vm.add_input(addr)
            vm.add_input(NO_PACKET)
            self.nodes.append(vm)

        # Routing table: per-node RX queues, owned by the controller
        self.rx_queues: list[deque[tuple[int, int]]] = [deque() for _ in range(size)]
        self._partial: list[list[int]] = [[] for _ in range(size)]

        self.nat_packet: Optional[tuple[int, int]] = None
        self.nat_received: list[tuple[int, int]] = []
        self.nat_deliveries: list[int] = []   # Y values sent to node 0

        self.rounds: int = 0
        self.packets_routed: int = 0

    # -----------------------------------------------------------------
    #  Routing
    # -----------------------------------------------------------------

    def _route(self, src: int, values: list[int]) -> int:
        """Queue complete packets from *src*; returns packets sent to nodes."""
        buf = self._partial[src]
        buf.extend(values)
        n = len(buf) - len(buf) % PACKET_CELLS
        routed = 0
        for i in range(0, n, PACKET_CELLS):
            dest, x, y = buf[i:i + PACKET_CELLS]
            if dest == self.nat_address:
                self.nat_packet = (x, y)
                self.nat_received.append((x, y))
                LOGGER.debug("node %d -> NAT (%d, %d)", src, x, y)
            elif 0 <= dest < self.size:
                self.rx_queues[dest].append((x, y))
                routed += 1
                LOGGER.debug("node %d -> node %d (%d, %d)", src, dest, x, y)
            else:
                raise RoutingError(src, dest)
        del buf[:n]
        self.packets_routed += routed
        return routed

    def _deliver(self):
        for addr, queue in enumerate(self.rx_queues):
            vm = self.nodes[addr]
            if vm.is_halted():
                if queue:
                    LOGGER.debug("dropping %d packet(s) for halted node %d",
                                 len(queue), addr)
                queue.clear()
                continue
            if not queue:
                vm.add_input(NO_PACKET)
                continue
            while queue:
                x, y = queue.popleft()
                vm.add_input(x)
                vm.add_input(y)

    # -----------------------------------------------------------------
    #  Execution
    # -----------------------------------------------------------------

    def step(self) -> bool:
        """Run every live node until it suspends, then deliver packets.

        Returns True if the round was idle.
        """
        if self.all_halted:
            raise NetworkError(f"All nodes halted after {self.rounds} round(s)")

        routed = 0
        for addr, vm in enumerate(self.nodes):
            if vm.is_halted():
                continue
            vm.run()
            routed += self._route(addr, vm.drain_output())
        self.rounds += 1

        idle = routed == 0
        if idle and self.nat_packet is not None:
            x, y = self.nat_packet
            self.rx_queues[0].append((x, y))
            self.nat_deliveries.append(y)
            LOGGER.info("network idle at round %d: NAT -> node 0 (%d, %d)",
                        self.rounds, x, y)

        self._deliver()
        return idle

    def run_until_nat_packet(self) -> tuple[int, int]:
        """Run until a packet reaches the NAT address and return it."""
        start = len(self.nat_received)
        for _ in range(self.max_rounds):
            self.step()
            if len(self.nat_received) > start:
                return self.nat_received[start]
        raise NetworkError(f"No NAT packet within {self.max_rounds} rounds")

    def run_until_repeated_nat(self) -> int:
        """Run until the NAT delivers the same Y to node 0 twice in a row."""
        start = len(self.nat_deliveries)
        for _ in range(self.max_rounds):
            self.step()
            d = self.nat_deliveries
            if len(d) > start and len(d) >= 2 and d[-1] == d[-2]:
                return d[-1]
        raise NetworkError(f"NAT did not repeat within {self.max_rounds} rounds")

    # -----------------------------------------------------------------
    #  State queries
    # -----------------------------------------------------------------

    @property
    def all_halted(self) -> bool:
        """True if every node is halted."""
        return all(vm.is_halted() for vm in self.nodes)

    def dump_state(self) -> str:
        lines = [f"=== Network: {self.size} nodes, round {self.rounds} ==="]
        for addr, vm in enumerate(self.nodes):
            lines.append(f"--- Node {addr} ---")
            lines.append(vm.dump_state())
        lines.append(f"  NAT: last={self.nat_packet} "
                     f"received={len(self.nat_received)} "
                     f"delivered={self.nat_deliveries}")
        return "\n".join(lines)
