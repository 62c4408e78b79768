#!/usr/bin/env python3
"""
Logging Configuration for the booking confirmation flow
Provides console output plus rotating log files per concern
"""

import logging
import logging.handlers
import os
import shutil
from datetime import datetime
from typing import Optional

from infrastructure.constants import FLOW_LOGGER_NAMES
from infrastructure.settings import AppSettings, get_settings


def _reset_log_directory(log_dir: str) -> None:
    """Remove files from the previous session so each run starts clean."""
    if not os.path.exists(log_dir):
        return
    for filename in os.listdir(log_dir):
        file_path = os.path.join(log_dir, filename)
        try:
            if os.path.isfile(file_path) or os.path.islink(file_path):
                os.unlink(file_path)
            elif os.path.isdir(file_path):
                shutil.rmtree(file_path)
        except OSError as e:
            print(f'Failed to delete {file_path}. Reason: {e}')


def setup_logging(settings: Optional[AppSettings] = None, *, clear_previous: bool = True) -> str:
    """
    Set up logging with a console handler and rotating file handlers.

    Args:
        settings: Settings to read production mode and log directory from.
            Defaults to :func:`infrastructure.settings.get_settings`.
        clear_previous: Delete the previous session's log files first.

    Returns:
        The directory log files are written to.
    """
    settings = settings or get_settings()
    production_mode = settings.production_mode
    log_dir = settings.log_directory

    if clear_previous:
        _reset_log_directory(log_dir)
    os.makedirs(log_dir, exist_ok=True)

    main_log_file = os.path.join(log_dir, 'booking.log')
    debug_log_file = os.path.join(log_dir, 'booking_debug.log')
    error_log_file = os.path.join(log_dir, 'booking_errors.log')
    flow_log_file = os.path.join(log_dir, 'booking_flow.log')

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.WARNING if production_mode else logging.DEBUG)
    root_logger.handlers = []

    detailed_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d in %(funcName)s()] - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    console_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.WARNING if production_mode else logging.INFO)
    console_handler.setFormatter(console_formatter)
    root_logger.addHandler(console_handler)

    main_file_handler = logging.handlers.RotatingFileHandler(
        main_log_file,
        maxBytes=10*1024*1024,  # 10MB
        backupCount=5,
        encoding='utf-8'
    )
    main_file_handler.setLevel(logging.WARNING if production_mode else logging.INFO)
    main_file_handler.setFormatter(detailed_formatter)
    root_logger.addHandler(main_file_handler)

    # Debug file only in development
    if not production_mode:
        debug_file_handler = logging.handlers.RotatingFileHandler(
            debug_log_file,
            maxBytes=50*1024*1024,  # 50MB
            backupCount=3,
            encoding='utf-8'
        )
        debug_file_handler.setLevel(logging.DEBUG)
        debug_file_handler.setFormatter(detailed_formatter)
        root_logger.addHandler(debug_file_handler)

    error_file_handler = logging.handlers.RotatingFileHandler(
        error_log_file,
        maxBytes=5*1024*1024,  # 5MB
        backupCount=5,
        encoding='utf-8'
    )
    error_file_handler.setLevel(logging.ERROR)
    error_file_handler.setFormatter(detailed_formatter)
    root_logger.addHandler(error_file_handler)

    # Dedicated file for the confirmation flow components
    flow_handler = logging.handlers.RotatingFileHandler(
        flow_log_file,
        maxBytes=20*1024*1024,  # 20MB
        backupCount=5,
        encoding='utf-8'
    )
    flow_handler.setLevel(logging.INFO if production_mode else logging.DEBUG)
    flow_handler.setFormatter(detailed_formatter)

    for name in FLOW_LOGGER_NAMES:
        component_logger = logging.getLogger(name)
        component_logger.addHandler(flow_handler)
        component_logger.setLevel(logging.INFO if production_mode else logging.DEBUG)

    # Reduce noise from external libraries
    logging.getLogger('asyncio').setLevel(logging.WARNING)

    root_logger.info("="*80)
    root_logger.info(f"Booking flow logging initialized - {datetime.now()}")
    root_logger.info(f"Production Mode: {'ON' if production_mode else 'OFF'}")
    root_logger.info(f"Main log: {main_log_file}")
    if not production_mode:
        root_logger.info(f"Debug log: {debug_log_file}")
    root_logger.info(f"Error log: {error_log_file}")
    root_logger.info(f"Flow log: {flow_log_file}")
    root_logger.info("="*80)

    return log_dir
