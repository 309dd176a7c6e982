"""
Application Initialization
==========================
This module constructs the MVC (Model-View-Controller) architecture and starts
the Qt Event Loop.

Why is this file needed?
------------------------
It acts as the orchestrator. It:
1. Configures logging.
2. Instantiates the application context (PkgManager, persistence, tabs).
3. Instantiates the Main Window (View), passing the context into it.
4. Prevents circular import errors by being the only module importing all layers.
"""
import logging
import os
import sys

from visualizeit.app.application import create_app
from visualizeit.app.ui.main_window import MainWindow
from visualizeit.context import AppContext
from visualizeit.logging_config import level_from_env, setup_logging


def main() -> None:
    # 1. Setup Logging (Console + Optional File)
    # Use VISUALIZEIT_DEBUG=1 to see everything during development
    # VISUALIZEIT_LOG_LEVEL=WARNING etc. overrides the level
    debug = os.environ.get("VISUALIZEIT_DEBUG") == "1"
    setup_logging(level=logging.DEBUG if debug else level_from_env(),
                  log_file="visualizeit_debug.log" if debug else None)

    # 2. Create the Qt Application
    app = create_app()

    # 3. Initialize the object model registries
    context = AppContext.create()

    # 4. Initialize the Main Window, passing the context
    window = MainWindow(context)
    window.show()

    # 5. Start Event Loop
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
