"""
Settings
========
Run limits and output locations, read from the environment.

  AGENT_MAX_STEPS       node executions allowed per run before
                        StepLimitExceeded (default 25)
  AGENT_MAX_REJECTIONS  rejected crop evaluations before the crop run gives up
                        (default 3)
  CROP_OUTPUT_PATH      where an approved crop is written
                        (default "cropped-output.png" in the cwd)

Each getter reads the environment on every call so tests can set variables
per test without reloading the module.
"""
import logging
import os

logger = logging.getLogger(__name__)

DEFAULT_MAX_STEPS = 25
DEFAULT_MAX_REJECTIONS = 3
DEFAULT_OUTPUT_PATH = "cropped-output.png"


def _positive_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("[settings] %s=%r is not an integer, using %d", name, raw, default)
        return default
    if value < 1:
        logger.warning("[settings] %s=%d must be positive, using %d", name, value, default)
        return default
    return value


def get_max_steps() -> int:
    return _positive_int("AGENT_MAX_STEPS", DEFAULT_MAX_STEPS)


def get_max_rejections() -> int:
    return _positive_int("AGENT_MAX_REJECTIONS", DEFAULT_MAX_REJECTIONS)


def get_output_path() -> str:
    """
    Return the file path for an approved crop.

    Resolution order:
      1. CROP_OUTPUT_PATH environment variable
      2. DEFAULT_OUTPUT_PATH ("cropped-output.png" in the cwd)
    """
    return os.getenv("CROP_OUTPUT_PATH", DEFAULT_OUTPUT_PATH)
