'''
LICENSING
-------------------------------------------------

syncs: A python Syncs client.
    Copyright (C) 2016 Muterra, Inc.
    
    Contributors
    ------------
    Nick Badger
        badg@muterra.io | badg@nickbadger.com | nickbadger.com

    This library is free software; you can redistribute it and/or
    modify it under the terms of the GNU Lesser General Public
    License as published by the Free Software Foundation; either
    version 2.1 of the License, or (at your option) any later version.

    This library is distributed in the hope that it will be useful,
    but WITHOUT ANY WARRANTY; without even the implied warranty of
    MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the GNU
    Lesser General Public License for more details.

    You should have received a copy of the GNU Lesser General Public
    License along with this library; if not, write to the
    Free Software Foundation, Inc.,
    51 Franklin Street,
    Fifth Floor,
    Boston, MA  02110-1301 USA

------------------------------------------------------
'''


# Submodules
from . import codec
from . import comms
from . import config
from . import dispatch
from . import events
from . import exceptions
from . import logutils
from . import rmi
from . import shared

# Toplevel namespace
from .client import Syncs
from .comms import WSConnection
from .config import ClientConfig
from .exceptions import *
from .shared import GLOBAL
from .shared import GROUP
from .shared import CLIENT
from .shared import SharedChange

# Logging shenanigans
import logging
from logging import NullHandler
logging.getLogger(__name__).addHandler(NullHandler())
