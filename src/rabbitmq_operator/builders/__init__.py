"""Builders computing the child objects of a RabbitmqCluster."""

from .builder import ChildDescriptor, build_desired_state

__all__ = ["ChildDescriptor", "build_desired_state"]
