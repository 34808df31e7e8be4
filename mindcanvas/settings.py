"""Canvas settings for MindCanvas."""

import os
import json
import math
from dataclasses import dataclass, asdict, fields
from typing import Optional, Mapping


ENV_PREFIX = "MINDCANVAS_"

# Scale factors; each must be a finite number above zero
POSITIVE_FIELDS = ("min_scale", "max_scale", "zoom_step", "keyboard_zoom_step")


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class CanvasSettings:
    """Tunables for the canvas view."""
    min_scale: float = 0.1
    max_scale: float = 3.0
    zoom_step: float = 1.1
    keyboard_zoom_step: float = 1.2
    show_grid: bool = True
    grid_size: int = 30
    show_instructions: bool = True

    def to_json(self) -> str:
        return json.dumps(asdict(self))

    @classmethod
    def from_json(cls, data: Optional[str]) -> "CanvasSettings":
        if not data:
            return cls()
        try:
            d = json.loads(data)
            # Filter to only known fields to handle schema evolution
            known = {f.name for f in fields(cls)}
            return cls(**{k: v for k, v in d.items() if k in known})
        except (json.JSONDecodeError, TypeError, AttributeError):
            return cls()

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "CanvasSettings":
        """Defaults overridden by ``MINDCANVAS_<FIELD>`` environment variables.

        Values that do not parse are ignored, as are scale factors that are
        not finite numbers above zero.
        """
        environ = os.environ if environ is None else environ
        settings = cls()
        for f in fields(cls):
            raw = environ.get(ENV_PREFIX + f.name.upper())
            if raw is None:
                continue
            try:
                if f.type in (bool, "bool"):
                    value = _env_bool(raw)
                elif f.type in (int, "int"):
                    value = int(raw)
                else:
                    value = float(raw)
            except ValueError:
                continue
            if f.name in POSITIVE_FIELDS and not (math.isfinite(value) and value > 0):
                continue
            setattr(settings, f.name, value)
        if settings.min_scale > settings.max_scale:
            settings.min_scale, settings.max_scale = settings.max_scale, settings.min_scale
        return settings
