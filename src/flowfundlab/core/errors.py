"""
Error classes for FlowFundLab.

This module defines the configuration error raised when solver options or
engine inputs are out of range.
"""


class ConfigError(Exception):
    """
    Configuration error during engine setup.

    This exception is raised when solver options are invalid or when an engine
    is called with an input that cannot be processed at all, before any
    computation starts.

    **Common Causes:**
    - Non-positive ``max_iterations`` or ``epsilon``
    - Negative, NaN or infinite funding passed to the discrete engine
    - Unknown configuration keys in a config mapping

    **Example Usage:**
        ```python
        from flowfundlab.core.errors import ConfigError
        from flowfundlab.core.config import DistributionConfig

        try:
            DistributionConfig(max_iterations=0)
        except ConfigError as e:
            print(f"Configuration error: {e}")
        ```

    **When to Use:**
    - In config ``__post_init__`` validation
    - At engine entry points for scalar arguments
    """

    pass
