"""Installed dependency trees and the engine that mutates them."""

from .engine import NpmTreeEngine, TreeEngine
from .loader import load_actual
from .models import Node, Tree

__all__ = ["NpmTreeEngine", "TreeEngine", "load_actual", "Node", "Tree"]
