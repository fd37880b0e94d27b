"""HTTP routers: JSON API, dashboard and health."""
