"""
Imaging module: delay-and-sum, adjoint, eikonal and f-k migration beamformers,
and apodization masks.
"""

from .das import *
from .adjoint import *
from .eikonal import *
from .migration import *
from . import apodization
