"""MCP Server - Tool definitions for assistant integration.

Defines the MCP tools an assistant can invoke for food and activity logging.
The authenticated user comes from the request context set by the HTTP
middleware. Engine errors are returned as ``{"error", "code", ...}`` dicts.
"""

import functools
import logging
from contextvars import ContextVar
from typing import Any, Callable, Optional

from mcp.server.fastmcp import FastMCP
from mcp.server.transport_security import TransportSecuritySettings

from ..core.activity import available_sources, estimate_activity_calories
from ..core.errors import LedgerError
from ..core.models import validate_input, ManualActivityInput
from .services import LedgerServices


logger = logging.getLogger(__name__)

# Context variable to store current user_id per request
current_user_id: ContextVar[str | None] = ContextVar("current_user_id", default=None)

INSTRUCTIONS = """NutriLog - Personal calorie ledger.

Use these tools to log what the user eats and how active they are, and to
show daily, weekly and monthly summaries.

On first use, call setup_user to set the daily calorie goal.
When logging food, estimate the nutrition yourself and call log_food with the
totals and one item per food. After logging, show the updated daily summary.
Dates are YYYY-MM-DD in UTC; omit them for today."""

# Summary fields that repeat the entry lists
_ENTRY_LISTS = {"food_entries", "activity_entries"}


def get_user_id() -> str:
    """Get current authenticated user ID.

    Raises:
        RuntimeError: If no user is authenticated
    """
    user_id = current_user_id.get()
    if user_id is None:
        raise RuntimeError("No authenticated user. Ensure API key is provided.")
    return user_id


def _returns_errors(fn: Callable[..., Any]) -> Callable[..., Any]:
    """Render engine errors as tool results instead of raising."""

    @functools.wraps(fn)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return fn(*args, **kwargs)
        except LedgerError as e:
            logger.warning("Tool %s failed: %s", fn.__name__, e.message)
            return e.to_dict()

    return wrapper


def create_mcp(services: LedgerServices, allowed_hosts: Optional[list[str]] = None) -> FastMCP:
    """Create the MCP server bound to one set of services.

    Args:
        services: Engine components shared by all tools
        allowed_hosts: Host headers accepted by the DNS rebinding protection

    Returns:
        FastMCP server with stateless HTTP transport
    """
    transport_security = TransportSecuritySettings(
        enable_dns_rebinding_protection=True,
        allowed_hosts=allowed_hosts or ["localhost:*", "127.0.0.1:*", "*.run.app", "*.run.app:*"],
    )
    mcp = FastMCP(
        "nutrilog",
        instructions=INSTRUCTIONS,
        stateless_http=True,
        transport_security=transport_security,
    )

    reconciliation = services.reconciliation
    aggregator = services.aggregator

    # ==================== Settings Tools ====================

    @mcp.tool()
    @_returns_errors
    def setup_user(daily_calorie_goal: int) -> dict:
        """Set the user's daily calorie goal (e.g. 2000).

        Returns:
            The stored goal
        """
        user = services.auth.set_calorie_goal(get_user_id(), daily_calorie_goal)
        return {"daily_calorie_goal": user.daily_calorie_goal}

    @mcp.tool()
    @_returns_errors
    def get_activity_preferences() -> dict:
        """Get the user's activity tracking preferences (created with defaults on first use)."""
        return services.preferences.get(get_user_id()).model_dump(mode="json")

    @mcp.tool()
    @_returns_errors
    def update_activity_preferences(
        activity_goal: int | None = None,
        preferred_source: str | None = None,
        enabled_sources: list[str] | None = None,
        auto_sync_enabled: bool | None = None,
        sync_frequency: str | None = None,
        calorie_calculation_method: str | None = None,
    ) -> dict:
        """Update activity preferences. Only provided fields are changed.

        Args:
            activity_goal: Calories to burn per day (100-2000)
            preferred_source: e.g. "healthkit", "googlefit", "manual"
            enabled_sources: Sources allowed to sync
            auto_sync_enabled: Whether the app syncs automatically
            sync_frequency: "realtime", "hourly" or "daily"
            calorie_calculation_method: "direct", "estimated" or "manual"
        """
        candidates = {
            "activity_goal": activity_goal,
            "preferred_source": preferred_source,
            "enabled_sources": enabled_sources,
            "auto_sync_enabled": auto_sync_enabled,
            "sync_frequency": sync_frequency,
            "calorie_calculation_method": calorie_calculation_method,
        }
        partial = {k: v for k, v in candidates.items() if v is not None}
        if not partial:
            return {"error": "No updates provided."}
        return services.preferences.upsert(get_user_id(), partial).model_dump(mode="json")

    # ==================== Food Tools ====================

    @mcp.tool()
    @_returns_errors
    def log_food(
        total_calories: float,
        protein: float,
        carbs: float,
        fat: float,
        description: str | None = None,
        foods: list[dict] | None = None,
        date_str: str | None = None,
    ) -> dict:
        """Log a meal to the user's ledger.

        Args:
            total_calories: Calories of the whole meal (0-10000)
            protein: Protein in grams
            carbs: Carbohydrates in grams
            fat: Fat in grams
            description: What the user said they ate
            foods: Optional items as {name, quantity, calories, protein, carbs, fat};
                quantity is free text such as "200g" or "2 pcs"
            date_str: Day in YYYY-MM-DD format (defaults to today)

        Returns:
            The created entries and the updated daily summary
        """
        user_id = get_user_id()
        entries = reconciliation.save_food_entry(user_id, {
            "description": description,
            "total_calories": total_calories,
            "protein": protein,
            "carbs": carbs,
            "fat": fat,
            "foods": foods,
            "source_model": "mcp-client",
            "date": date_str,
        })
        summary = aggregator.get_daily_summary(user_id, entries[0].log_date)
        return {
            "entries": [e.model_dump(mode="json") for e in entries],
            "daily_summary": summary.model_dump(mode="json", exclude=_ENTRY_LISTS),
        }

    @mcp.tool()
    @_returns_errors
    def list_food(date_str: str | None = None) -> dict:
        """List the food entries of a day, newest first."""
        user_id = get_user_id()
        entries = reconciliation.list_food_entries(user_id, date_str)
        return {
            "date": services.resolver.resolve_date(date_str),
            "entries": [e.model_dump(mode="json") for e in entries],
        }

    @mcp.tool()
    @_returns_errors
    def delete_food(entry_id: str) -> dict:
        """Delete one of the user's food entries by ID."""
        reconciliation.delete_food_entry(get_user_id(), entry_id)
        return {"success": True}

    # ==================== Activity Tools ====================

    @mcp.tool()
    @_returns_errors
    def sync_activity(
        source: str,
        calories_burned: float,
        external_id: str | None = None,
        steps: float | None = None,
        distance_km: float | None = None,
        duration: float | None = None,
        activity_type: str | None = None,
        date_str: str | None = None,
    ) -> dict:
        """Record activity from a health platform. Repeats with the same
        source and external_id refresh the same entry.

        Args:
            source: e.g. "healthkit", "googlefit", "garmin", "device_sensors"
            calories_burned: Calories burned (0-10000)
            external_id: The platform's ID for this observation
            steps: Step count
            distance_km: Distance in kilometres
            duration: Minutes
            activity_type: e.g. "walking"
            date_str: Day in YYYY-MM-DD format (defaults to today)
        """
        entry = reconciliation.sync_activity(get_user_id(), {
            "source": source,
            "calories_burned": calories_burned,
            "external_id": external_id,
            "steps": steps,
            "distance_km": distance_km,
            "duration": duration,
            "activity_type": activity_type,
            "date": date_str,
        })
        return entry.model_dump(mode="json")

    @mcp.tool()
    @_returns_errors
    def add_manual_activity(
        activity_type: str,
        duration: float,
        intensity: str,
        calories_burned: float | None = None,
        notes: str | None = None,
        date_str: str | None = None,
    ) -> dict:
        """Log an activity by hand. Calories are estimated when not given.

        Args:
            activity_type: e.g. "running", "yoga"
            duration: Minutes (1-600)
            intensity: "low", "moderate" or "high"
            calories_burned: Known calories, if any
            notes: Free text
            date_str: Day in YYYY-MM-DD format (defaults to today)
        """
        entry = reconciliation.add_manual_activity(get_user_id(), {
            "activity_type": activity_type,
            "duration": duration,
            "intensity": intensity,
            "calories_burned": calories_burned,
            "notes": notes,
            "date": date_str,
        })
        return entry.model_dump(mode="json")

    @mcp.tool(name="estimate_activity_calories")
    @_returns_errors
    def estimate_activity(activity_type: str, duration: float, intensity: str = "moderate") -> dict:
        """Preview the calories a manual activity would be logged with. Nothing is saved."""
        data = validate_input(ManualActivityInput, {
            "activity_type": activity_type,
            "duration": duration,
            "intensity": intensity,
        })
        return {
            "activity": data.activity_type,
            "duration": data.duration,
            "intensity": data.intensity.value,
            "estimated_calories": estimate_activity_calories(data.activity_type, data.duration, data.intensity),
        }

    @mcp.tool()
    @_returns_errors
    def get_activity_summary(date_str: str | None = None) -> dict:
        """Activity totals (calories, steps, distance) for a day."""
        return aggregator.get_activity_summary(get_user_id(), date_str).model_dump(mode="json")

    @mcp.tool()
    @_returns_errors
    def get_activity_sources(platform: str) -> dict:
        """Activity sources available on "ios" or "android"."""
        return {"platform": platform.lower(), "sources": available_sources(platform)}

    # ==================== Summary Tools ====================

    @mcp.tool()
    @_returns_errors
    def get_dashboard(date_str: str | None = None) -> dict:
        """Daily dashboard: consumed, burned, net, remaining, macros, progress and goal status."""
        return aggregator.get_daily_summary(get_user_id(), date_str).model_dump(mode="json")

    @mcp.tool()
    @_returns_errors
    def get_enhanced_dashboard(date_str: str | None = None) -> dict:
        """Daily dashboard with activity totals, the activity goal and whether it was an active day."""
        return aggregator.get_enhanced_daily_summary(get_user_id(), date_str).model_dump(mode="json")

    @mcp.tool()
    @_returns_errors
    def get_weekly_summary(end_date: str | None = None) -> dict:
        """Seven days ending at end_date (defaults to today), oldest first; days without data are zero."""
        week = aggregator.get_weekly_summary(get_user_id(), end_date)
        return {
            "start_date": week[0].date,
            "end_date": week[-1].date,
            "days": [d.model_dump(mode="json") for d in week],
        }

    @mcp.tool()
    @_returns_errors
    def get_monthly_summary(year: int | None = None, month: int | None = None) -> dict:
        """Monthly totals and average daily calories (defaults to the current month)."""
        return aggregator.get_monthly_summary(get_user_id(), year, month).model_dump(mode="json")

    return mcp
