"""Dependency injection container for the chart service."""

import logging

from chart_service.plugins.factory import ChartFactory

logger = logging.getLogger(__name__)

# ============================================================================
# Global instances (singleton, exposed via functions for easier testing/mocking)
# ============================================================================

_chart_factory_instance = None


def get_chart_factory() -> ChartFactory:
    """Get chart factory (singleton)."""
    global _chart_factory_instance
    if _chart_factory_instance is None:
        from chart_service.constants import STRICT_REGISTRATION
        from chart_service.plugins.discovery import bundled_loader

        _chart_factory_instance = ChartFactory(loader=bundled_loader(), strict=STRICT_REGISTRATION)
        logger.info("Created ChartFactory instance")
    return _chart_factory_instance


# Test utility function (for unit testing - resets all singletons)
def reset_services():
    """Reset all service instances (only for testing)."""
    global _chart_factory_instance

    _chart_factory_instance = None
    logger.info("Reset all service instances")
