"""
Tests package - Test suite for the RabbitMQ operator.

Contains:
- unit/: Unit tests for individual components, run against an in-memory
  object store
"""
