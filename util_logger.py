# ============================================================================
# CLAUDE CONTEXT - LOGGING
# ============================================================================
# STATUS: Core Infrastructure - Structured logging
# PURPOSE: JSON-only structured logging for Azure Functions with Application Insights
# EXPORTS: ComponentType, LogLevel, LogContext, JSONFormatter, LoggerFactory, log_exceptions
# INTERFACES: Dataclass models, enums, factory, JSON formatter, exception decorator
# DEPENDENCIES: enum, dataclasses, typing, datetime, logging, json, traceback (stdlib only!)
# SCOPE: All logging in the application
# PATTERNS: JSON-only output, Azure Functions integration, Exception decorator pattern
# ENTRY_POINTS: LoggerFactory.create_logger(), @log_exceptions decorator
# ============================================================================

"""
Unified Logger System

Component-specific loggers that emit one JSON object per line. Context fields
(regeneration run id, feeder id, request id) are attached as
``customDimensions`` so Application Insights can index them.

Example:
    logger = LoggerFactory.create_logger(ComponentType.SERVICE, "MapFeaturesService")
    logger.info("Regeneration finished", extra={'custom_dimensions': {'features': 120}})
"""

import os
import sys
import json
import logging
import traceback
from enum import Enum
from functools import wraps
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Dict, Any


# ============================================================================
# COMPONENT TYPES - Aligned with the layer architecture
# ============================================================================

class ComponentType(Enum):
    """
    Component types aligned with the application layers.
    """
    SERVICE = "service"        # Business logic layer
    PIPELINE = "pipeline"      # Feature generation stages
    REPOSITORY = "repository"  # Data access layer
    TRIGGER = "trigger"        # HTTP entry point layer


class LogLevel(Enum):
    """Standard Python log levels as enum for type safety."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    def to_python_level(self) -> int:
        """Convert to Python logging level constant."""
        return getattr(logging, self.value)


# ============================================================================
# LOG CONTEXT - Correlation and tracking
# ============================================================================

@dataclass
class LogContext:
    """
    Context for log correlation across one regeneration or request.
    """
    run_id: Optional[str] = None      # Regeneration run identifier
    feeder_id: Optional[int] = None   # Feeder being processed
    stage: Optional[str] = None       # classify / build / hull / replace
    request_id: Optional[str] = None  # HTTP request ID

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, dropping unset fields."""
        return {
            k: v for k, v in {
                'run_id': self.run_id,
                'feeder_id': self.feeder_id,
                'stage': self.stage,
                'request_id': self.request_id,
            }.items() if v is not None
        }


# ============================================================================
# JSON FORMATTER - Structured logging for Azure Functions
# ============================================================================

class JSONFormatter(logging.Formatter):
    """
    JSON formatter that Application Insights can parse automatically.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name,
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }

        if hasattr(record, 'custom_dimensions'):
            log_obj['customDimensions'] = record.custom_dimensions

        if record.exc_info:
            log_obj['exception'] = {
                'type': record.exc_info[0].__name__ if record.exc_info[0] else None,
                'message': str(record.exc_info[1]) if record.exc_info[1] else None,
                'traceback': self.formatException(record.exc_info)
            }

        return json.dumps(log_obj, default=str)


class _ContextAdapter(logging.LoggerAdapter):
    """Merges component identity and LogContext into custom_dimensions."""

    def process(self, msg, kwargs):
        extra = kwargs.get('extra') or {}
        custom_dims = dict(self.extra)
        custom_dims.update(extra.get('custom_dimensions', {}))
        extra['custom_dimensions'] = custom_dims
        kwargs['extra'] = extra
        return msg, kwargs


# ============================================================================
# LOGGER FACTORY - Creates component-specific loggers
# ============================================================================

class LoggerFactory:
    """
    Factory for creating component-specific loggers.

    Example:
        logger = LoggerFactory.create_logger(ComponentType.PIPELINE, "MapFeaturePipeline")
        logger.info("Classified feed")
    """

    default_level = LogLevel.DEBUG if os.getenv('DEBUG_LOGGING', '').lower() == 'true' else LogLevel.INFO

    @classmethod
    def create_logger(
        cls,
        component_type: ComponentType,
        name: str,
        context: Optional[LogContext] = None,
        level: Optional[LogLevel] = None
    ) -> logging.LoggerAdapter:
        """
        Create a logger for a specific component.

        Args:
            component_type: Type of component
            name: Component name (e.g., "MapFeaturesService")
            context: Optional log context for correlation
            level: Optional level override (defaults to DEBUG_LOGGING switch)

        Returns:
            Logger adapter that injects context as custom dimensions
        """
        log_level = (level or cls.default_level).to_python_level()

        logger = logging.getLogger(f"{component_type.value}.{name}")
        logger.setLevel(log_level)

        # One JSON handler per named logger
        if not any(isinstance(h.formatter, JSONFormatter) for h in logger.handlers):
            handler = logging.StreamHandler(sys.stdout)
            handler.setLevel(log_level)
            handler.setFormatter(JSONFormatter())
            logger.addHandler(handler)

        # Azure's root logger forwards to Application Insights
        logger.propagate = True

        dimensions = context.to_dict() if context else {}
        dimensions['component_type'] = component_type.value
        dimensions['component_name'] = name
        return _ContextAdapter(logger, dimensions)

    @classmethod
    def create_with_context(
        cls,
        component_type: ComponentType,
        name: str,
        run_id: Optional[str] = None,
        feeder_id: Optional[int] = None,
        stage: Optional[str] = None
    ) -> logging.LoggerAdapter:
        """Create logger with regeneration context fields."""
        context = LogContext(
            run_id=run_id,
            feeder_id=feeder_id,
            stage=stage
        ) if any(v is not None for v in (run_id, feeder_id, stage)) else None

        return cls.create_logger(component_type, name, context=context)


# ============================================================================
# EXCEPTION DECORATOR - Automatic exception logging with context
# ============================================================================

def log_exceptions(component_type: Optional[ComponentType] = None,
                   component_name: Optional[str] = None,
                   logger: Optional[logging.LoggerAdapter] = None):
    """
    Decorator to log exceptions with full context, then re-raise them.

    Example:
        @log_exceptions(ComponentType.SERVICE, "MapFeaturesService")
        def regenerate():
            ...
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except Exception as e:
                if logger is not None:
                    log = logger
                else:
                    log = LoggerFactory.create_logger(
                        component_type or ComponentType.SERVICE,
                        component_name or func.__module__ or "unknown"
                    )
                log.error(
                    f"Exception in {func.__name__}",
                    exc_info=True,
                    extra={
                        'custom_dimensions': {
                            'function_name': func.__name__,
                            'function_module': func.__module__,
                            'exception_type': type(e).__name__,
                            'exception_message': str(e),
                            'traceback': traceback.format_exc()
                        }
                    }
                )
                raise
        return wrapper
    return decorator
