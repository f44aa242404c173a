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
import collections
import collections.abc

# Intra-package dependencies
from .exceptions import ReadOnlySharedObject

from .utils import _JitDictDict
from .utils import call_listener


# ###############################################
# Boilerplate
# ###############################################


import logging
logger = logging.getLogger(__name__)

# Control * imports.
__all__ = [
    'GLOBAL',
    'GROUP',
    'CLIENT',
    'SharedChange',
    'SharedObject',
    'SharedView',
    'SharedStore',
]


# ###############################################
# Library
# ###############################################


GLOBAL = 'GLOBAL'
GROUP = 'GROUP'
CLIENT = 'CLIENT'

SCOPES = frozenset({GLOBAL, GROUP, CLIENT})


# Passed to change listeners. by is either 'client' or 'server'.
SharedChange = collections.namedtuple(
    typename = 'SharedChange',
    field_names = ('values', 'by'),
)


class SharedObject:
    ''' A mirrored key/value object. CLIENT objects are authored by us
    and pushed to the server one key at a time; GLOBAL and GROUP objects
    are authored by the server only, and arrive in batches.
    
    Applications only ever see the reactive view (self.view).
    '''
    
    def __init__(self, scope, name, client, group=None):
        if scope not in SCOPES:
            raise ValueError('Unknown shared object scope: ' + repr(scope))
        
        self.scope = scope
        self.name = name
        self.group = group
        self.read_only = scope != CLIENT
        
        self._client = client
        self._data = {}
        self._listener = None
        self._view = SharedView(self)
        
    def __repr__(self):
        if self.group is None:
            return '<SharedObject {} {!r}>'.format(self.scope, self.name)
        else:
            return '<SharedObject {} {!r}/{!r}>'.format(
                self.scope, self.group, self.name
            )
        
    @property
    def view(self):
        return self._view
        
    @property
    def listener(self):
        return self._listener
        
    def get(self, key, default=None):
        return self._data.get(key, default)
        
    def keys(self):
        return self._data.keys()
        
    def as_dict(self):
        ''' Returns a shallow copy of the mirrored data.
        '''
        return dict(self._data)
        
    def on_change(self, listener):
        ''' Registers the change listener, replacing any previous one.
        '''
        self._listener = listener
        
    def set(self, key, value):
        ''' Writes a single key. Returns False (changing nothing) if the
        object is read-only; otherwise updates the mirror, notifies the
        change listener, and syncs the key to the server.
        '''
        if self.read_only:
            logger.warning(
                'Rejected write to read-only ' + repr(self) + ' key ' +
                repr(key) + '.'
            )
            return False
        
        self._data[key] = value
        call_listener(self._listener, SharedChange({key: value}, 'client'))
        self._client.send_command({
            'type': 'sync',
            'scope': self.scope,
            'name': self.name,
            'key': key,
            'value': value,
        })
        return True
        
    def apply(self, values):
        ''' Applies a batch of changes from the server, then notifies
        the change listener once.
        '''
        self._data.update(values)
        call_listener(self._listener, SharedChange(values, 'server'))


class SharedView:
    ''' The reactive view of a shared object. Behaves like an object
    (attributes) and a mapping (items) over the mirrored data, where
    missing keys read as None. Calling it with a function registers that
    function as the change listener.
    
    There are deliberately no public methods here, so every public
    attribute name is a data key. Use the underlying SharedObject for
    explicit access.
    '''
    __slots__ = ('_shared',)
    
    def __init__(self, shared):
        object.__setattr__(self, '_shared', shared)
        
    def __call__(self, listener=None):
        if listener is not None:
            self._shared.on_change(listener)
        return self
        
    def __getattr__(self, key):
        # Only called for names that aren't real attributes. Leave private
        # names alone, so copy/pickle probing doesn't find data.
        if key.startswith('_'):
            raise AttributeError(key)
        return self._shared.get(key)
        
    def __setattr__(self, key, value):
        if key.startswith('_'):
            raise AttributeError('Cannot set private attribute ' + key)
        self[key] = value
        
    def __getitem__(self, key):
        return self._shared.get(key)
        
    def __setitem__(self, key, value):
        if not self._shared.set(key, value):
            raise ReadOnlySharedObject(
                repr(self._shared) + ' is read-only.'
            )
            
    def __contains__(self, key):
        return key in self._shared.keys()
        
    def __iter__(self):
        return iter(list(self._shared.keys()))
        
    def __len__(self):
        return len(self._shared.keys())
        
    def __repr__(self):
        return '<SharedView of {!r}: {!r}>'.format(
            self._shared, self._shared.as_dict()
        )


class SharedStore:
    ''' Owns the three shared object registries for one client. There is
    exactly one SharedObject per (scope, group, name).
    '''
    
    def __init__(self, client):
        self._client = client
        # Lookup: name -> SharedObject
        self._global = {}
        # Lookup: group name -> {name -> SharedObject}
        self._group = _JitDictDict()
        # Lookup: name -> SharedObject
        self._client_objs = {}
        
        self._sync_handlers = {
            GLOBAL: self._sync_global,
            GROUP: self._sync_group,
            CLIENT: self._sync_client,
        }
        
    def get_object(self, scope, name, group=None):
        ''' Create-or-fetch the SharedObject itself.
        '''
        if scope == GLOBAL:
            registry = self._global
        elif scope == GROUP:
            registry = self._group[group]
        elif scope == CLIENT:
            registry = self._client_objs
        else:
            raise ValueError('Unknown shared object scope: ' + repr(scope))
            
        try:
            return registry[name]
            
        except KeyError:
            logger.debug('Creating shared object {} {!r}.'.format(scope, name))
            shared = SharedObject(scope, name, self._client, group=group)
            registry[name] = shared
            return shared
        
    def shared(self, name):
        return self.get_object(CLIENT, name).view
        
    def group_shared(self, group, name):
        return self.get_object(GROUP, name, group=group).view
        
    def global_shared(self, name):
        return self.get_object(GLOBAL, name).view
        
    def clear(self):
        self._global.clear()
        self._group.clear()
        self._client_objs.clear()
        
    def handle_sync(self, command):
        ''' Incoming sync command. This is the only way GLOBAL and GROUP
        objects ever change.
        '''
        scope = command.get('scope')
        name = command.get('name')
        values = command.get('values')
        
        try:
            handler = self._sync_handlers[scope]
        except (KeyError, TypeError):
            logger.warning('Ignoring sync with unknown scope ' + repr(scope))
            return
            
        if name is None:
            logger.warning('Ignoring ' + str(scope) + ' sync without name.')
            return
            
        if not isinstance(values, collections.abc.Mapping):
            logger.warning(
                'Ignoring sync for ' + repr(name) + ' with values ' +
                repr(values)
            )
            return
            
        handler(command, name, values)
        
    def _sync_global(self, command, name, values):
        self.get_object(GLOBAL, name).apply(values)
        
    def _sync_group(self, command, name, values):
        group = command.get('group')
        
        if group is None:
            logger.warning('Ignoring GROUP sync without group for ' +
                           repr(name))
        else:
            self.get_object(GROUP, name, group=group).apply(values)
        
    def _sync_client(self, command, name, values):
        self.get_object(CLIENT, name).apply(values)
