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
import pathlib

# Intra-package dependencies
from .comms import ConnectionManager
from .comms import WSConnection

from .config import ClientConfig

from .dispatch import CommandDispatcher

from .events import EventBus

from .exceptions import ConnectionClosed

from .logutils import autoconfig

from .rmi import RMIManager

from .shared import SharedStore


# ###############################################
# Boilerplate
# ###############################################


import logging
logger = logging.getLogger(__name__)

# Control * imports.
__all__ = [
    'Syncs',
]


# ###############################################
# Library
# ###############################################


class Syncs(ConnectionManager):
    ''' A Syncs client: one persistent connection to a Syncs server,
    carrying plain messages, pub/sub events, shared state, and remote
    method invocation in both directions.
    
    Syncs is a loopa task. Either start() it directly (optionally with
    threaded=True), or register it with a loopa.TaskCommander. Public
    methods must be called from within its event loop; listeners are
    always called from there.
    
    Keyword arguments that name a ClientConfig option override the
    config; everything else goes to loopa. loopa's own debug flag is
    available as loop_debug, since debug is the client option.
    '''
    
    def __init__(self, url, config=None, *args, connection_cls=WSConnection,
                 loop_debug=None, **kwargs):
        options = {name: kwargs.pop(name) for name in ClientConfig.options()
                   if name in kwargs}
        config = ClientConfig.from_options(base=config, **options)
        
        if loop_debug is not None:
            kwargs['debug'] = loop_debug
        
        # The dispatcher needs all three layers to exist already.
        self.events = EventBus(self)
        self.store = SharedStore(self)
        self.rmi = RMIManager(self)
        self.dispatcher = CommandDispatcher(self)
        
        super().__init__(
            url,
            connection_cls,
            self.dispatcher,
            config,
            *args,
            **kwargs
        )
        
    def __repr__(self):
        return '<{} {} online={}>'.format(
            type(self).__name__, self.url, self.online
        )
        
    @classmethod
    def from_config(cls, path=None, url=None, enable_logs=True, **kwargs):
        ''' Builds a client from a config file. With no path, the file is
        found with ClientConfig.find(). If enable_logs, logging is set up
        from the config's instrumentation section.
        
        The url is required; it is not part of the config file.
        '''
        if url is None:
            raise ValueError('A server url is required.')
            
        if path is None:
            config = ClientConfig.find()
        else:
            config = ClientConfig.load(pathlib.Path(path))
            
        if enable_logs:
            instrumentation = config.instrumentation
            
            if instrumentation.logdir is None:
                autoconfig(loglevel=instrumentation.verbosity)
            else:
                autoconfig(
                    tofile = True,
                    logdirname = str(instrumentation.logdir),
                    loglevel = instrumentation.verbosity
                )
            
        return cls(url, config, **kwargs)
        
    def connection_terminated(self):
        ''' No reconnect is coming; nobody is left to answer our calls,
        and the mirrored shared state is no longer maintained.
        '''
        self.rmi.fail_pending(
            ConnectionClosed('Connection to ' + str(self.url) + ' closed.')
        )
        self.store.clear()
        
    # Pub/sub
    
    def subscribe(self, event, callback):
        self.events.subscribe(event, callback)
        
    def unsubscribe(self, event, callback):
        self.events.unsubscribe(event, callback)
        
    def publish(self, event, data=None):
        return self.events.publish(event, data)
        
    # Shared state
        
    def shared(self, name):
        ''' The CLIENT-scoped shared object called name. Writes to it
        are synced to the server.
        '''
        return self.store.shared(name)
        
    def group_shared(self, group, name):
        ''' A read-only GROUP-scoped shared object.
        '''
        return self.store.group_shared(group, name)
        
    def global_shared(self, name):
        ''' A read-only GLOBAL-scoped shared object.
        '''
        return self.store.global_shared(name)
        
    # RMI
        
    @property
    def functions(self):
        ''' The functions the server may call on us.
        '''
        return self.rmi.functions
        
    @property
    def remote(self):
        ''' remote.name(*args) calls name on the server, returning a
        future for its result.
        '''
        return self.rmi.remote
        
    def call(self, name, *args):
        return self.rmi.call(name, *args)
