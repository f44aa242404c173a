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


# Intra-package dependencies
from .utils import _JitSetDict
from .utils import call_listener


# ###############################################
# Boilerplate
# ###############################################


import logging
logger = logging.getLogger(__name__)

# Control * imports.
__all__ = [
    'EventBus',
]


# ###############################################
# Library
# ###############################################


class EventBus:
    ''' The publish/subscribe layer. Subscriptions are sets, so the same
    callback subscribed twice is still only called once per event.
    Callbacks for one event are called in no particular order.
    '''
    
    def __init__(self, client):
        self._client = client
        # Lookup: event name -> set(callbacks)
        self._subscriptions = _JitSetDict()
        
    def subscribe(self, event, callback):
        self._subscriptions[event].add(callback)
        
    def unsubscribe(self, event, callback):
        ''' Removes the callback. Unknown events and callbacks are
        silently ignored.
        '''
        callbacks = self._subscriptions.get(event)
        
        if callbacks is not None:
            callbacks.discard(callback)
            # Don't hang on to empty sets
            if not callbacks:
                del self._subscriptions[event]
        
    def subscriptions(self, event):
        ''' Snapshot of the callbacks currently subscribed to event.
        '''
        return frozenset(self._subscriptions.get(event, ()))
        
    def publish(self, event, data):
        ''' Sends the event to the server. Returns whether it was sent.
        '''
        return self._client.send_command(
            {'type': 'event', 'event': str(event), 'data': data}
        )
        
    def handle(self, command):
        ''' Incoming event command.
        '''
        event = command.get('event')
        
        if not event:
            return
        
        # Note use of get: we never create subscriptions for the server.
        # Copy the set, in case a callback unsubscribes itself.
        callbacks = tuple(self._subscriptions.get(event, ()))
        
        if not callbacks:
            logger.debug('No subscribers for event ' + repr(event))
        
        for callback in callbacks:
            call_listener(callback, command.get('data'))
