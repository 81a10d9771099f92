"""HTTP surface of the service: routes, middleware and dependencies."""
