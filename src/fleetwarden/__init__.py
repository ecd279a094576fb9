"""fleetwarden: health monitoring, dependency-aware control and alerting
for a fleet of containerized services.

Subpackages:
    - supervisor: Dependency graph, health monitor and service controller
    - alerts: Alert manager, history and broadcast hub
    - config: Layered TOML/environment configuration
    - daemon: Fleet supervisor loops and the FastAPI control server
    - cli: The ``fleetwarden`` command line
"""

__version__ = "0.1.0"
