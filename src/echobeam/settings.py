"""
Settings used in this library.

Usage:

    import echobeam.settings as s

    # Get parameter:
    print(s.SOME_PARAMETER)

    # Change parameter:
    s.SOME_PARAMETER = 'new_value'

"""

from multiprocessing import cpu_count

import numpy as np

# ------------------------------------------------------------------------------
## Standard types
FLOAT = np.dtype(float)
INT = np.int64
COMPLEX = np.dtype(complex)

# ------------------------------------------------------------------------------
## Default for computation

# Upper bound of the memory used by one materialised delay tensor in the
# block-wise beamformers. The default block sizes are derived from it.
MAX_BLOCK_BYTES = 2**30

# In the context of a multithreaded computation, BLOCK_SIZE is the typical number of
# floats assigned to each thread.
BLOCK_SIZE_EUC_DISTANCE = 500
BLOCK_SIZE_FREQ_INTERP = 2**22

NUMTHREADS = cpu_count()

# Compile the numba sampling kernels with ``parallel=True``.
USE_PARALLEL = True
