"""
Optional inference backends for yolo_overlay.

Backends are kept in a separate module so core functionality (decode/NMS)
stays lightweight and can be used without installing inference runtimes.
"""

from __future__ import annotations

__all__ = []
