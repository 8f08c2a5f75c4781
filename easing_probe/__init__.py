"""easing-probe: recover easing curves and animation parameters from live web pages."""

__version__ = "0.1.0"
