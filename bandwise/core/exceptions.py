"""Exceptions raised at the edges of the scheduler."""


class BandwiseError(Exception):
    """Base class for bandwise errors."""


class SnapshotError(BandwiseError):
    """A learner snapshot could not be read or decoded."""
