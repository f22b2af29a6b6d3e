"""
Python library for ultrasound image reconstruction from multichannel pulse-echo data
"""

from . import settings
from . import exceptions
from .core import *

from . import config, geometry, helpers, sampling, signal, ut, encoding, im
from .geometry import Grid, PolarGrid
from .sampling import Backend, Interpolation
from .encoding import focus_tx, refocus


__license__ = "MIT"

# Must respect PEP 440: https://www.python.org/dev/peps/pep-0440/
# Must be bumped at each release
__version__ = "0.1.0"
