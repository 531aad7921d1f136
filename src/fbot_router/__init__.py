# ABOUTME: F-Bot router package initialization
# ABOUTME: Model selection and cost metering for the F-Bot medical chatbot

"""
F-Bot Router

Picks an LLM for each F-Bot request under capability, safety and budget
constraints, and meters what the chosen models cost.
"""

__version__ = "0.1.0"

from fbot_router.meter import CostMeter
from fbot_router.registry import ConfigurationError, Registry
from fbot_router.selector import SelectionResult, UserPreferences
from fbot_router.service import RoutingService

__all__ = [
    "ConfigurationError",
    "CostMeter",
    "Registry",
    "RoutingService",
    "SelectionResult",
    "UserPreferences",
    "__version__",
]
