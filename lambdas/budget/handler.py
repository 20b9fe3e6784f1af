"""Budget Lambda handler for the settings screen."""

from typing import Any

from aws_lambda_powertools import Logger, Tracer
from aws_lambda_powertools.event_handler import APIGatewayRestResolver, CORSConfig
from aws_lambda_powertools.event_handler.exceptions import BadRequestError
from aws_lambda_powertools.utilities.typing import LambdaContext
from pydantic import ValidationError

from budget.models import MAX_HISTORY_DAYS, DailyLimitRequest, EstimateRequest
from budget.service import BudgetService
from cost_control.config import get_config
from cost_control.context import CostControlContext
from cost_control.db import DynamoDBClient
from cost_control.store import DynamoDBStore

logger = Logger()
tracer = Tracer()
cors_config = CORSConfig(allow_origin="*", allow_headers=["Content-Type"], max_age=300)
app = APIGatewayRestResolver(cors=cors_config)

# Initialize service lazily
_service: BudgetService | None = None


def get_service() -> BudgetService:
    """Get or create the budget service instance."""
    global _service
    if _service is None:
        config = get_config()
        store = DynamoDBStore(DynamoDBClient(config.table_name))
        _service = BudgetService(CostControlContext.from_config(config, store))
    return _service


def reset_service() -> None:
    """Reset the service instance (for testing)."""
    global _service
    if _service is not None:
        _service.context.close()
    _service = None


@app.get("/budget")
@tracer.capture_method
def get_budget() -> dict[str, Any]:
    """Get current usage.

    Returns:
        200 response with daily and monthly usage
    """
    return get_service().get_status()


@app.put("/budget/limit")
@tracer.capture_method
def update_limit() -> dict[str, Any]:
    """Change the daily limit.

    Returns:
        200 response with updated usage
    """
    try:
        body = app.current_event.json_body or {}
        request = DailyLimitRequest(**body)
    except ValidationError as e:
        raise BadRequestError(str(e)) from None

    return get_service().update_limit(request)


@app.post("/budget/reset")
@tracer.capture_method
def reset_usage() -> dict[str, Any]:
    """Reset today's and this month's usage.

    Returns:
        200 response with zeroed usage
    """
    return get_service().reset()


@app.get("/budget/history")
@tracer.capture_method
def get_history() -> dict[str, Any]:
    """Get per-day usage for a chart.

    Returns:
        200 response with history points, oldest first
    """
    params = app.current_event.query_string_parameters or {}
    days_str = params.get("days", "7")

    try:
        days = min(max(int(days_str), 1), MAX_HISTORY_DAYS)
    except ValueError:
        days = 7

    return get_service().get_history(days)


@app.post("/budget/estimate")
@tracer.capture_method
def estimate() -> dict[str, Any]:
    """Estimate an operation's cost and check it against today's budget.

    Returns:
        200 response with estimate and admission decision
    """
    try:
        body = app.current_event.json_body or {}
        request = EstimateRequest(**body)
    except ValidationError as e:
        raise BadRequestError(str(e)) from None

    return get_service().estimate(request)


@logger.inject_lambda_context
@tracer.capture_lambda_handler
def lambda_handler(event: dict, context: LambdaContext) -> dict:
    """Main Lambda entry point.

    Args:
        event: API Gateway event
        context: Lambda context

    Returns:
        API Gateway response
    """
    # Warm containers must see spend and limits saved by other processes
    get_service().refresh()
    return app.resolve(event, context)
