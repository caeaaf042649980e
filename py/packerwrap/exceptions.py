"""packerwrap.exceptions -- Public exception module.

All packerwrap exceptions are accessible here::

    from packerwrap.exceptions import PackerError, ExecutionError

    try:
        packer.validate('image.pkr.hcl')
    except ExecutionError as e:
        print(f'packer exited {e.returncode}: {e.stderr}')
    except PackerError as e:
        print(f'packerwrap error: {e}')
"""

from ._exceptions import (
    PackerError,
    NotFoundError,
    ConfigError,
    IoError,
    ExecutionError,
)

__all__ = [
    "PackerError",
    "NotFoundError",
    "ConfigError",
    "IoError",
    "ExecutionError",
]
