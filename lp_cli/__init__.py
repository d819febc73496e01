"""
LiquidPlanner CLI - Three-layer architecture for the LiquidPlanner API.

Layers:
- core: Raw types and HTTP client with throttle-aware retries
- sdk: High-level LiquidPlannerClient grouped by resource
- cli: Opinionated command-line interface
"""

from lp_cli.sdk import LiquidPlannerClient

__version__ = "0.1.0"
__all__ = ["LiquidPlannerClient"]
