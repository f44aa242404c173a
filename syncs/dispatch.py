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
import traceback

# Intra-package dependencies
from .codec import unpack
from .codec import is_command

from .utils import call_listener


# ###############################################
# Boilerplate
# ###############################################


import logging
logger = logging.getLogger(__name__)

# Control * imports.
__all__ = [
    'CommandDispatcher',
]


# ###############################################
# Library
# ###############################################


class CommandDispatcher:
    ''' Routes every incoming frame. Plain messages go to the client's
    message listeners; commands go to exactly one handler, chosen by an
    exact match on their type. Unknown types are ignored, so that newer
    servers can talk to older clients.
    '''
    
    def __init__(self, client):
        self._client = client
        
        # Lookup: command type -> handler(command)
        self._handlers = {
            'getSocketId': client.handle_get_socket_id,
            'setSocketId': client.handle_set_socket_id,
            'event': client.events.handle,
            'sync': client.store.handle_sync,
            'rmi': client.rmi.handle_invocation,
            'rmi-result': client.rmi.handle_result,
        }
        
    @property
    def command_types(self):
        return frozenset(self._handlers)
        
    async def __call__(self, connection, frame):
        ''' Called for all incoming frames.
        '''
        logger.debug('CONN ' + str(connection) + ' dispatching frame.')
        self.dispatch_frame(frame)
        
    def dispatch_frame(self, frame):
        ''' Decodes and dispatches a raw frame. Malformed frames are
        dropped silently.
        '''
        message = unpack(frame)
        
        if message is None:
            logger.debug('Dropped undecodable frame.')
        else:
            self.dispatch(message)
        
    def dispatch(self, message):
        ''' Dispatches an already-decoded message.
        '''
        if not is_command(message):
            for listener in self._client.message_listeners:
                call_listener(listener, message)
            return
            
        if self._client.config.debug:
            logger.info('⬇ INPUT COMMAND: ' + repr(message))
            
        command_type = message['type']
        
        try:
            handler = self._handlers[command_type]
            
        except (KeyError, TypeError):
            logger.debug('Ignoring unknown command type ' + repr(command_type))
            return
            
        try:
            handler(message)
            
        except Exception:
            logger.error(
                'Handler for ' + repr(command_type) + ' command raised ' +
                'w/ traceback:\n' + ''.join(traceback.format_exc())
            )
