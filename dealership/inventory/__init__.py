"""Dealership Inventory — car stock management.

REST API and admin pages for listing, creating, editing, soft-deleting and
bulk importing/exporting cars through Excel files.
"""
from flask import Blueprint

inventory_bp = Blueprint('inventory', __name__)

from . import routes, pages  # noqa: E402, F401
