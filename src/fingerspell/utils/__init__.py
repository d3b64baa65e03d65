"""Utility modules for configuration, logging and timing."""
from .config import Config
from .logger import setup_logging, LessonLogger, log_timing
from .performance import LatencyStats, Timer

__all__ = ["Config", "setup_logging", "LessonLogger", "log_timing", "LatencyStats", "Timer"]
