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


# Global dependencies
import re
import json
import collections.abc

from urllib.parse import quote
from urllib.parse import unquote


# ###############################################
# Boilerplate
# ###############################################


import logging
logger = logging.getLogger(__name__)

# Control * imports.
__all__ = [
    'pack',
    'unpack',
    'is_command',
]


# ###############################################
# Library
# ###############################################


# Everything the URI escaping leaves alone, beyond the letters, digits and
# "_.-~" that quote() never touches.
_URI_SAFE = ";,/?:@&=+$!*'()#"
# A percent sign that doesn't start a two digit hex escape.
_BAD_ESCAPE = re.compile(r'%(?![0-9A-Fa-f]{2})')


def pack(message):
    ''' Serialize a message into a wire frame: JSON text, percent
    escaped with the URI rules.
    '''
    return quote(json.dumps(message), safe=_URI_SAFE)
    
    
def unpack(frame):
    ''' Deserialize a wire frame. Returns None for anything that isn't
    a well-formed, percent-escaped JSON document; never raises.
    '''
    try:
        if isinstance(frame, (bytes, bytearray)):
            frame = bytes(frame).decode('utf-8')
        
        if _BAD_ESCAPE.search(frame):
            raise ValueError('Malformed percent escape in frame.')
            
        return json.loads(unquote(frame, errors='strict'))
        
    except (TypeError, ValueError) as exc:
        # UnicodeDecodeError and json.JSONDecodeError are both ValueErrors
        logger.debug('Discarding malformed frame: ' + repr(exc))
        return None
        
        
def is_command(message):
    ''' Commands are mappings carrying both the command marker and a
    type discriminator. Anything else is a plain message.
    '''
    return (
        isinstance(message, collections.abc.Mapping) and
        bool(message.get('command')) and
        bool(message.get('type'))
    )
