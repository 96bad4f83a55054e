"""Engine package.

- core.py: the Engine facade over resolver, install cache and activation
- activation.py: persisted last-known-good versions
- dispatcher.py: effective descriptor selection and child process execution
"""

from .activation import ActivationState
from .core import Engine
from .dispatcher import Dispatcher

__all__ = ["ActivationState", "Dispatcher", "Engine"]
