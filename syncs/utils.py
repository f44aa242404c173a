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
import asyncio
import inspect
import traceback

from loopa.utils import make_background_future


# ###############################################
# Boilerplate
# ###############################################


import logging
logger = logging.getLogger(__name__)

# Control * imports.
__all__ = [
    'call_listener',
]


# ###############################################
# Lib
# ###############################################
    
    
class _JitSetDict(dict):
    ''' Just-in-time set dictionary. Item access on a missing key
    creates an empty set there. Use get() to look without creating.
    '''
    def __getitem__(self, key):
        if key not in self:
            self[key] = set()
        return super().__getitem__(key)
    
    
class _JitDictDict(dict):
    ''' Just-in-time dict dict. Item access on a missing key creates an
    empty dict there. Use get() to look without creating.
    '''
    def __getitem__(self, key):
        if key not in self:
            self[key] = {}
        return super().__getitem__(key)
        
        
async def _await_listener(awaitable, listener):
    ''' Wraps an awaitable returned from an application callback, so
    that its failure is logged instead of lost in the background.
    '''
    try:
        await awaitable
        
    except asyncio.CancelledError:
        raise
        
    except Exception:
        logger.error(
            'Async listener ' + repr(listener) + ' raised w/ traceback:\n' +
            ''.join(traceback.format_exc())
        )
        
        
def call_listener(listener, *args):
    ''' Invokes an application callback on the current thread. Returns
    True if it ran without raising. Coroutine callbacks are scheduled as
    background futures. Callbacks never raise into the caller: we are
    always somewhere in the middle of dispatching a frame.
    '''
    if listener is None:
        return False
        
    try:
        result = listener(*args)
        
        if inspect.isawaitable(result):
            make_background_future(_await_listener(result, listener))
            
    except Exception:
        logger.error(
            'Listener ' + repr(listener) + ' raised w/ traceback:\n' +
            ''.join(traceback.format_exc())
        )
        return False
        
    else:
        return True
