# dac/defaults.py
"""Default settings - no imports to avoid circular dependencies."""

settings = {
    'validation_error_format': '{title}: {error}',  # field title must come before the error
    'logging': {
        'directory': './logs',
        'level': 'INFO',
        'format': '%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        'timestamp_format': '%Y-%m-%d %H:%M:%S',
        'filename_format': '%Y%m%d_%H%M%S',  # Set to '' for single log file (no timestamp)
        'split_errors': True,
        'console': True,
        'retention_days': 30,
        'sql_debug': False,  # log generated SQL at DEBUG level
    }
}
