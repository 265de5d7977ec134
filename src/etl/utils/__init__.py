"""Pipeline utilities package: logging."""

from src.etl.utils.logger import build_json_formatter, setup_logger

__all__ = ["build_json_formatter", "setup_logger"]
