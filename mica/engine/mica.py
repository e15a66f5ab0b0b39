"""MICA: progressive multiple curve alignment.

Sub-alignments are merged nearest-first. Distances are PICA alignments of
the sub-alignments' consensus curves, weighted by how many curves each
consensus stands for. Merging maps every member through the relative
positions and length ratios that PICA induced on its consensus.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from mica.engine.cancellation import CancellationToken, Outcome, check
from mica.engine.consensus import consensus_of
from mica.engine.decomposition import IntervalDecomposition
from mica.engine.distance import SampledCurveDistance, WarpPenalty
from mica.engine.errors import AlignmentCancelled, InvariantViolation
from mica.engine.pica import PICA, PairwiseAlignment
from mica.engine.precision import precision_delta
from mica.utils.geometry import length_ratios, locate, relative_positions

logger = logging.getLogger(__name__)


class AlignmentNode:
    """A (partial) alignment: compatible member curves plus their consensus."""

    def __init__(
        self,
        members: Sequence[IntervalDecomposition],
        children: tuple[AlignmentNode, AlignmentNode] | None = None,
        fuse_guide: PairwiseAlignment | None = None,
        consensus: IntervalDecomposition | None = None,
    ) -> None:
        if not members:
            raise ValueError("An alignment node needs at least one member")
        self._members = tuple(members)
        self._children = children
        self._fuse_guide = fuse_guide
        self._consensus = consensus

    @property
    def members(self) -> tuple[IntervalDecomposition, ...]:
        return self._members

    @property
    def children(self) -> tuple[AlignmentNode, AlignmentNode] | None:
        return self._children

    @property
    def fuse_guide(self) -> PairwiseAlignment | None:
        """The pairwise alignment of the children's consensi that built this node."""
        return self._fuse_guide

    @property
    def consensus(self) -> IntervalDecomposition:
        if self._consensus is None:
            self._consensus = consensus_of(self._members)
        return self._consensus

    @property
    def names(self) -> list[str]:
        return [m.name for m in self._members]

    @property
    def is_leaf(self) -> bool:
        return self._children is None

    def guide_tree(self) -> str:
        if self._children is None:
            return ",".join(self.names)
        return "(" + ",".join(child.guide_tree() for child in self._children) + ")"

    def reordered(self, order: Sequence[str]) -> AlignmentNode:
        """Same node with members sorted by their position in ``order``."""
        rank = {name: i for i, name in enumerate(order)}
        members = sorted(self._members, key=lambda m: rank.get(m.name, len(rank)))
        return AlignmentNode(members, self._children, self._fuse_guide, self._consensus)

    def __repr__(self) -> str:
        return f"AlignmentNode({self.guide_tree()})"


@dataclass
class _PairEntry:
    left: AlignmentNode
    right: AlignmentNode
    alignment: PairwiseAlignment


def _ordered_pair(a: AlignmentNode, b: AlignmentNode) -> tuple[AlignmentNode, AlignmentNode]:
    """Order by each node's lexicographically smallest member name."""
    return (a, b) if min(a.names) < min(b.names) else (b, a)


class _ProgressiveHandler:
    """Keeps the open nodes and the cached pairwise alignments between them."""

    def __init__(self, pica: PICA, token: CancellationToken | None) -> None:
        self.pica = pica
        self.token = token
        self.nodes: list[AlignmentNode] = []
        self._pairs: dict[tuple[int, int], _PairEntry] = {}

    def __len__(self) -> int:
        return len(self.nodes)

    def weights(self, left: AlignmentNode, right: AlignmentNode) -> tuple[float, float]:
        return float(len(left.members)), float(len(right.members))

    def add(self, node: AlignmentNode) -> None:
        if any(n is node for n in self.nodes):
            return
        for other in self.nodes:
            check(self.token)
            left, right = _ordered_pair(node, other)
            w_left, w_right = self.weights(left, right)
            alignment = self.pica.run(left.consensus, w_left, right.consensus, w_right, self.token)
            self._pairs[(id(left), id(right))] = _PairEntry(left, right, alignment)
        self.nodes.append(node)

    def remove(self, node: AlignmentNode) -> None:
        self.nodes = [n for n in self.nodes if n is not node]
        self._pairs = {
            key: entry
            for key, entry in self._pairs.items()
            if entry.left is not node and entry.right is not node
        }

    def closest_pair(self) -> _PairEntry:
        return min(self._pairs.values(), key=lambda entry: entry.alignment.distance)

    def involves_reference(self, entry: _PairEntry) -> bool:
        return False

    def add_fused(self, node: AlignmentNode, had_reference: bool) -> None:
        self.add(node)


class _ReferenceHandler(_ProgressiveHandler):
    """Interval lengths follow the reference whenever it takes part."""

    def __init__(self, pica: PICA, token: CancellationToken | None, reference: AlignmentNode) -> None:
        super().__init__(pica, token)
        self.reference: AlignmentNode | None = reference
        self.add(reference)

    def weights(self, left: AlignmentNode, right: AlignmentNode) -> tuple[float, float]:
        w_left, w_right = super().weights(left, right)
        if left is self.reference:
            w_right = 0.0
        elif right is self.reference:
            w_left = 0.0
        return w_left, w_right

    def remove(self, node: AlignmentNode) -> None:
        if node is self.reference:
            self.reference = None
        super().remove(node)

    def involves_reference(self, entry: _PairEntry) -> bool:
        return entry.left is self.reference or entry.right is self.reference

    def add_fused(self, node: AlignmentNode, had_reference: bool) -> None:
        if had_reference:
            if self.reference is not None:
                raise InvariantViolation("Reference reset while another reference is present")
            self.reference = node
        self.add(node)


class MICA:
    def __init__(
        self,
        distance: SampledCurveDistance,
        max_distortion_ratio: float = 2.0,
        max_rel_x_shift: float = 0.2,
        min_rel_interval_length: float = 0.05,
        warp_penalty: WarpPenalty | None = None,
    ) -> None:
        self.distance = distance
        self.pica = PICA(
            distance,
            max_distortion_ratio=max_distortion_ratio,
            max_rel_x_shift=max_rel_x_shift,
            min_rel_interval_length=min_rel_interval_length,
            warp_penalty=warp_penalty,
        )

    # -- public API -------------------------------------------------------

    def align(
        self, *curves: IntervalDecomposition, token: CancellationToken | None = None
    ) -> Outcome[AlignmentNode]:
        """Progressively align all curves; members come back in input order."""
        try:
            return Outcome.of(self.run(curves, token=token))
        except AlignmentCancelled:
            logger.info("Multiple alignment cancelled")
            return Outcome.cancel()

    def align_to_reference(
        self,
        reference: IntervalDecomposition,
        *curves: IntervalDecomposition,
        token: CancellationToken | None = None,
    ) -> Outcome[AlignmentNode]:
        """Align all curves to ``reference``, whose interval lengths are kept.

        The final member order is the reference first, then ``curves`` in
        input order.
        """
        try:
            return Outcome.of(self.run(curves, reference=reference, token=token))
        except AlignmentCancelled:
            logger.info("Reference alignment cancelled")
            return Outcome.cancel()

    # -- algorithm --------------------------------------------------------

    def run(
        self,
        curves: Sequence[IntervalDecomposition],
        reference: IntervalDecomposition | None = None,
        token: CancellationToken | None = None,
        on_fuse: Callable[[AlignmentNode], None] | None = None,
    ) -> AlignmentNode:
        """Like :meth:`align` but raises AlignmentCancelled on cancellation.

        ``on_fuse`` is called with every newly fused node.
        """
        check(token)
        everything = ([reference] if reference is not None else []) + list(curves)
        self._validate(list(curves), everything)
        t0 = time.perf_counter()
        logger.info(
            "MICA: aligning %d curves%s",
            len(everything),
            f" to reference {reference.name}" if reference is not None else "",
        )

        handler: _ProgressiveHandler
        if reference is None:
            handler = _ProgressiveHandler(self.pica, token)
        else:
            handler = _ReferenceHandler(self.pica, token, AlignmentNode([reference]))
        for dec in curves:
            handler.add(AlignmentNode([dec]))

        while len(handler) > 1:
            check(token)
            entry = handler.closest_pair()
            had_reference = handler.involves_reference(entry)
            handler.remove(entry.left)
            handler.remove(entry.right)
            fused = self.fuse(entry.left, entry.right, entry.alignment, token)
            logger.debug(
                "Fused %s + %s (distance %.6g)",
                entry.left.guide_tree(),
                entry.right.guide_tree(),
                entry.alignment.distance,
            )
            check(token)
            handler.add_fused(fused, had_reference)
            if on_fuse is not None:
                on_fuse(fused)

        final = handler.nodes[0].reordered([dec.name for dec in everything])
        logger.info(
            "MICA complete: %s in %.0fms",
            final.guide_tree(),
            (time.perf_counter() - t0) * 1000,
        )
        return final

    @staticmethod
    def _validate(
        curves: list[IntervalDecomposition], everything: list[IntervalDecomposition]
    ) -> None:
        if not curves:
            raise ValueError("No curves given to be aligned")
        head = everything[0]
        if not all(head.is_compatible(dec) for dec in everything):
            raise ValueError("Given curves are incompatible")
        names = [dec.name for dec in everything]
        if len(set(names)) != len(names):
            raise ValueError("Curve names are not unique")

    def fuse(
        self,
        left: AlignmentNode,
        right: AlignmentNode,
        alignment: PairwiseAlignment,
        token: CancellationToken | None = None,
    ) -> AlignmentNode:
        """Merge two nodes, re-positioning members via their consensus alignment."""
        if alignment.first.source is not left.consensus.source:
            raise ValueError("Alignment does not belong to the left node's consensus")
        if alignment.second.source is not right.consensus.source:
            raise ValueError("Alignment does not belong to the right node's consensus")
        fused: list[IntervalDecomposition] = []
        for node, aligned in ((left, alignment.first), (right, alignment.second)):
            consensus = node.consensus.curve
            rel = relative_positions(consensus.x, consensus.xmin)
            ratios = length_ratios(aligned.curve.x, consensus.x)
            tolerance = precision_delta(consensus.length)
            for member in node.members:
                check(token)
                dup = member.copy()
                _remap(dup, rel, ratios, tolerance, aligned.curve.xmin - member.curve.xmin)
                fused.append(dup)
        return AlignmentNode(fused, children=(left, right), fuse_guide=alignment)


def _remap(dec: IntervalDecomposition, consensus_rel, ratios, tolerance: float, shift: float) -> None:
    x = dec.curve.x
    xmin = float(x[0])
    rel = x[1:] - xmin
    idx = [locate(consensus_rel, float(r), tolerance) for r in rel]
    missing = [float(r) for r, i in zip(rel, idx) if i < 0]
    if missing:
        raise InvariantViolation(
            f"Could not identify x-coordinate {missing[0]} of {dec.name} in its consensus"
        )
    x[0] += shift
    x[1:] = xmin + shift + rel * ratios[idx]
    dec.curve.geometry_changed()
