"""
Inventory - Projects, Their Counters and Flats
"""

from bto.inventory.flat import Flat, generate_flat_id
from bto.inventory.project import Project, generate_project_id

__all__ = ["Flat", "Project", "generate_flat_id", "generate_project_id"]
