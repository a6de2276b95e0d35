"""Wires configuration into a ready-to-use set of services."""

from treatment_tracker.adapters.memory import InMemoryGateway
from treatment_tracker.adapters.sqlalchemy_store import SqlAlchemyGateway
from treatment_tracker.config import AppConfig, validate_config
from treatment_tracker.observability import configure_logging
from treatment_tracker.services.assessment_submission import AssessmentSubmissionService
from treatment_tracker.services.clock import Clock, ZonedClock
from treatment_tracker.services.endpoints import AssessmentEndpoints
from treatment_tracker.services.weekly_trend import WeeklyTrendService


async def create_gateway(config: AppConfig) -> InMemoryGateway | SqlAlchemyGateway:
    if config.database.backend == "memory":
        return InMemoryGateway()
    gateway = SqlAlchemyGateway(
        config.database.url, echo=config.database.echo, timezone=config.clock.timezone
    )
    await gateway.create_schema()
    return gateway


async def create_endpoints(
    config: AppConfig | None = None,
    gateway: InMemoryGateway | SqlAlchemyGateway | None = None,
    clock: Clock | None = None,
) -> AssessmentEndpoints:
    """
    Build the endpoints facade.

    Without arguments the configuration comes from the environment; tests pass
    their own gateway and clock.
    """
    if config is None:
        config = validate_config()
    configure_logging(config.logging)

    if gateway is None:
        gateway = await create_gateway(config)
    if clock is None:
        clock = ZonedClock(config.clock.timezone)

    return AssessmentEndpoints(
        submissions=AssessmentSubmissionService(gateway, clock),
        trends=WeeklyTrendService(gateway, clock),
    )
