"""
Models package: export all SQLAlchemy models.
"""

from pitchside.models.base import Base
from pitchside.models.category import Category
from pitchside.models.event import Event
from pitchside.models.health import HealthLog, ServiceHealth
from pitchside.models.sale import Sale

__all__ = ["Base", "Category", "Event", "HealthLog", "Sale", "ServiceHealth"]
