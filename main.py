# main.py
import sys
import logging
from pathlib import Path
from typing import Dict

from captionmirror.LoggingSetup import setup_logging


def resolve_paths(script_path: Path) -> Dict[str, Path]:
    """
    Resolves application paths for both frozen and development modes.

    Development structure:
        caption-mirror/                # APP_DIR
        ├── main.py
        ├── captionmirror/
        ├── config/                    # CONFIG_DIR
        └── logs/                      # LOGS_DIR

    Frozen builds keep config next to the executable.

    Args:
        script_path: Path to main script or frozen executable

    Returns:
        Dictionary with resolved paths
    """
    app_dir = script_path.resolve().parent
    return {
        "APP_DIR": app_dir,
        "CONFIG_DIR": app_dir / "config",
        "LOGS_DIR": app_dir / "logs",
    }


def parse_args(argv: list) -> Dict:
    """Parse the command line.

    Supported:
        -v                   verbose logging and frame log
        --headless           no window, print deltas to stdout
        --config=PATH        configuration file
        --input-file=PATH    read captions from this file
    """
    options = {
        "verbose": "-v" in argv,
        "headless": "--headless" in argv,
        "config": None,
        "input_file": None,
    }
    for arg in argv:
        if arg.startswith("--config="):
            options["config"] = arg.split("=", 1)[1]
        elif arg.startswith("--input-file="):
            options["input_file"] = arg.split("=", 1)[1]
    return options


if __name__ == "__main__":
    is_frozen = getattr(sys, 'frozen', False)
    script = Path(sys.executable if is_frozen else __file__)
    PATHS = resolve_paths(script)
    options = parse_args(sys.argv[1:])

    setup_logging(PATHS["LOGS_DIR"], verbose=options["verbose"], is_frozen=is_frozen)

    try:
        from captionmirror.CaptionApp import CaptionApp

        app = CaptionApp(
            config_path=options["config"] or PATHS["CONFIG_DIR"] / "caption_config.json",
            logs_dir=PATHS["LOGS_DIR"],
            source_path=options["input_file"],
            headless=options["headless"],
            verbose=options["verbose"]
        )
        if options["verbose"]:
            app.service.set_frame_logging(True)
        app.run()

    except KeyboardInterrupt:
        logging.info("Interrupted by user.")
        sys.exit(0)
    except Exception as e:
        logging.error(f"ERROR: {type(e).__name__}: {e}", exc_info=True)
        sys.exit(1)
