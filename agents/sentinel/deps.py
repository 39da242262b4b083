"""
Process-wide service instances, handed to routes and jobs via FastAPI
dependencies (tests override them with app.dependency_overrides).
"""
from functools import lru_cache

from agents.sentinel.services.analyzer import TokenAnalyzer
from agents.sentinel.services.monitor import RugMonitor
from agents.sentinel.services.publisher import IncidentPublisher, build_publisher
from agents.sentinel.services.registry import TokenRegistry


@lru_cache
def get_registry() -> TokenRegistry:
    return TokenRegistry()


@lru_cache
def get_analyzer() -> TokenAnalyzer:
    return TokenAnalyzer(registry=get_registry())


@lru_cache
def get_monitor() -> RugMonitor:
    registry = get_registry()
    return RugMonitor(registry, publisher=IncidentPublisher(registry, build_publisher()))
