"""Utility modules for teshuffle."""

from teshuffle.utils.config import (
    DEFAULT_MIN_OVERLAP,
    DEFAULT_NBOOT,
    DEFAULT_NONTE_MODE,
    NONTE_MODES,
    ShuffleConfig,
    setup_thread_limits,
)
from teshuffle.utils.genome import (
    build_gaps,
    build_range,
    concat_beds,
    count_features,
    load_gaps,
    load_range,
)
from teshuffle.utils.logging_utils import log_options, setup_logger
from teshuffle.utils.subprocess_utils import (
    check_tool_installed,
    require_tools,
    run_command,
)
from teshuffle.utils.validation import validate_config, validate_file_exists
