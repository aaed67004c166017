"""Exceptions raised by bilevel_aggregator."""


class InvariantError(RuntimeError):
    """
    Raised by ``check_invariants()`` when the primary store and the
    group index disagree.

    Attributes:
        invariant: Short tag of the violated property (I1..I4)
        detail: Human readable description of the mismatch
    """

    def __init__(self, invariant: str, detail: str):
        self.invariant = invariant
        self.detail = detail
        super().__init__(f"{invariant}: {detail}")
