"""Service integrations for the Spacelift GraphQL API and state storage."""

__all__ = [
    "discovery",
    "generator",
    "queries",
    "spacelift_adapter",
    "state_transfer",
]
