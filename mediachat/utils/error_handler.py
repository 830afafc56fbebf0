import asyncio
import functools
from typing import TypeVar, Callable, Any, Optional, Type, Union
from loguru import logger
from ..exceptions import (
    MediaChatException,
    ProviderException,
    StoreException,
    ConfigurationException,
    ValidationException,
)

T = TypeVar('T')

__all__ = [
    "handle_exceptions",
    "log_exceptions",
    "convert_exceptions",
    "degrade_on_error",
    "MediaChatException",
    "ProviderException",
    "StoreException",
    "ConfigurationException",
    "ValidationException",
]


def handle_exceptions(
    retries: int = 3,
    fallback: Any = None,
    exceptions: Union[Type[Exception], tuple] = Exception,
    backoff_factor: float = 2.0,
    max_delay: float = 60.0
):
    """
    Decorator to handle exceptions with retry logic and fallback.

    Args:
        retries: Number of retry attempts
        fallback: Fallback value to return if all retries fail
        exceptions: Exception types to catch and retry
        backoff_factor: Exponential backoff factor
        max_delay: Maximum delay between retries
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs) -> T:
            last_exception = None

            for attempt in range(retries):
                try:
                    return await func(*args, **kwargs)
                except ConfigurationException:
                    # a missing key or endpoint will not fix itself between attempts
                    raise
                except exceptions as e:
                    last_exception = e

                    if attempt < retries - 1:
                        delay = min(backoff_factor ** attempt, max_delay)
                        logger.warning(f"Attempt {attempt + 1} of {func.__qualname__} failed: {e}. Retrying in {delay}s...")
                        await asyncio.sleep(delay)
                    else:
                        logger.error(f"All {retries} attempts of {func.__qualname__} failed: {e}")

            if fallback is not None:
                logger.info(f"Returning fallback value: {fallback}")
                return fallback

            raise last_exception

        if not asyncio.iscoroutinefunction(func):
            raise TypeError("handle_exceptions only wraps coroutine functions")
        return async_wrapper

    return decorator


def log_exceptions(
    log_level: str = "ERROR",
    include_traceback: bool = True,
    custom_message: Optional[str] = None
):
    """
    Decorator to log exceptions and re-raise them.

    Args:
        log_level: Log level for exception logging
        include_traceback: Whether to include traceback in log
        custom_message: Custom message to include in log
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs) -> T:
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                message = custom_message or f"Exception in {func.__name__}"
                if include_traceback:
                    logger.opt(exception=True).log(log_level, f"{message}: {e}")
                else:
                    logger.log(log_level, f"{message}: {e}")
                raise

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs) -> T:
            try:
                return func(*args, **kwargs)
            except Exception as e:
                message = custom_message or f"Exception in {func.__name__}"
                if include_traceback:
                    logger.opt(exception=True).log(log_level, f"{message}: {e}")
                else:
                    logger.log(log_level, f"{message}: {e}")
                raise

        if asyncio.iscoroutinefunction(func):
            return async_wrapper
        else:
            return sync_wrapper

    return decorator


def convert_exceptions(exception_map: dict):
    """
    Decorator to convert third-party exceptions into mediachat exceptions.

    Exceptions that already belong to the mediachat hierarchy pass through untouched.

    Args:
        exception_map: Dictionary mapping exception types to mediachat exception types
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs) -> T:
            try:
                return await func(*args, **kwargs)
            except MediaChatException:
                raise
            except Exception as e:
                for source_exc, target_exc in exception_map.items():
                    if isinstance(e, source_exc):
                        raise target_exc(str(e), details={"original_exception": type(e).__name__}) from e
                raise

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs) -> T:
            try:
                return func(*args, **kwargs)
            except MediaChatException:
                raise
            except Exception as e:
                for source_exc, target_exc in exception_map.items():
                    if isinstance(e, source_exc):
                        raise target_exc(str(e), details={"original_exception": type(e).__name__}) from e
                raise

        if asyncio.iscoroutinefunction(func):
            return async_wrapper
        else:
            return sync_wrapper

    return decorator


def degrade_on_error(default_factory: Callable[[], Any]):
    """
    Decorator for storage read paths: log the failure and return an empty result.

    Args:
        default_factory: Callable producing the value returned on failure (e.g. list)
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs) -> T:
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                logger.error(f"{func.__qualname__} failed, returning empty result: {e}")
                return default_factory()

        return async_wrapper

    return decorator
