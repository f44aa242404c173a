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
import collections
import copy
import yaml
import inspect
import os

# Intra-package dependencies
from .exceptions import ConfigError
from .exceptions import ConfigMissing


# ###############################################
# Boilerplate
# ###############################################


import logging
logger = logging.getLogger(__name__)

# Control * imports.
__all__ = [
    'AutoField',
    'Instrumentation',
    'ClientConfig',
]


# ###############################################
# Helper classes and encoder/decoder
# ###############################################
        
        
def _yaml_caster(loader, data):
    ''' Preserve order of OrderedDicts, and re-cast them as normal maps.
    Nothing special is needed in the reverse direction, because the
    AutoField system assigns everything to an OrderedDict regardless
    of how it was loaded.
    '''
    return loader.represent_mapping('tag:yaml.org,2002:map', data.items())
    
    
yaml.add_representer(collections.OrderedDict, _yaml_caster)


def _str_to_bool(s, failure_msg='Failed to infer truthiness.'):
    ''' Attempts to convert a string to a bool.
    '''
    # Normalize case.
    s = s.lower()
    
    truisms = {'y', 'true', 't', 'yes', '1', 'on'}
    falsities = {'n', 'false', 'f', 'no', '0', 'off'}
    
    if s in truisms:
        return True
    elif s in falsities:
        return False
    else:
        raise ValueError(failure_msg)


def _to_bool(value):
    ''' YAML already gives us bools for yes/no, but environment-ish
    strings and 0/1 still show up in hand-written configs.
    '''
    if isinstance(value, bool):
        return value
    elif isinstance(value, str):
        return _str_to_bool(value)
    elif isinstance(value, int):
        return bool(value)
    else:
        raise TypeError('Not a boolean: ' + repr(value))


def _to_seconds(value):
    ''' Durations are floats, in seconds. Bools are not durations.
    '''
    if isinstance(value, bool):
        raise TypeError('Not a duration: ' + repr(value))
    return float(value)


# ###############################################
# Library
# ###############################################
        
        
class AutoField:
    ''' Helper class descriptor for AutoMappers. Deleting the attribute
    resets it to its default (for subfields, a fresh subfield instance).
    '''
    
    def __init__(self, subfield=None, *args, default=None, decode=None,
                 encode=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.subfield = subfield
        self.default = default
        self._encode = encode
        self._decode = decode
        
    def encode(self, value):
        if value is None:
            return value
        elif self.subfield is not None:
            return value.entranscode()
        elif self._encode is None:
            return value
        elif callable(self._encode):
            return self._encode(value)
        else:
            return getattr(value, self._encode)()
        
    def decode(self, value):
        if value is None and self.subfield is not None:
            return self.subfield()
        elif value is None:
            return value
        elif self.subfield is not None:
            instance = self.subfield()
            instance.detranscode(value)
            return instance
        elif self._decode is None:
            return value
        elif callable(self._decode):
            return self._decode(value)
        else:
            raise TypeError('Decoding must use a callable.')
            
    @property
    def name(self):
        try:
            return self._name
        except AttributeError:
            return None
    
    @name.setter
    def name(self, value):
        ''' Writing checks to see if we have a value; if we do, it
        silently ignores the change.
        '''
        if self.name is None:
            self._name = value
            
    def __get__(self, instance, owner):
        if instance is None:
            return self
        else:
            return instance._fields[self.name]
            
    def __set__(self, instance, value):
        ''' Set the value at the instance's _fields OrderedDict.
        '''
        if self.subfield is not None and not isinstance(value, self.subfield):
            raise AttributeError('Cannot set AutoMapper attribute with ' +
                                 'subfield directly, except as an instance ' +
                                 'of the subfield.')
        
        else:
            instance._fields[self.name] = value
        
    def __delete__(self, instance):
        ''' Reset the value at the instance's _fields OrderedDict.
        '''
        if self.subfield is not None:
            instance._fields[self.name] = self.subfield()
        
        else:
            instance._fields[self.name] = copy.copy(self.default)
            

class _AutoMapperMixin:
    ''' Inject a control OrderedDict for the fields.
    '''
    
    def __init__(self, *args, **kwargs):
        # Create self._fields, the ordereddict equivalent of self.__dict__
        self._fields = collections.OrderedDict()
        # Deleting each field makes its descriptor reset it to the default
        for field in self.fields:
            delattr(self, field)
            
        # Now, we need to assign whatever was included in *args and **kwargs.
        bound_args = self._signature.bind_partial(*args, **kwargs)
        args = bound_args.arguments.pop('args', tuple())
        kwargs = bound_args.arguments.pop('kwargs', {})
        for name, value in bound_args.arguments.items():
            setattr(self, name, value)
        
        # Wait until after remapping *args and **kwargs in the binding above.
        super().__init__(*args, **kwargs)
        
    def entranscode(self):
        ''' Convert the object typed self._fields into a natively
        serializable ordereddict.
        '''
        transcoded = collections.OrderedDict()
        
        cls = type(self)
        for field in self.fields:
            descriptor = getattr(cls, field)
            value = self._fields[field]
            # Note that the descriptor handles nested fields and Nones
            transcoded[field] = descriptor.encode(value)
            
        return transcoded
        
    def detranscode(self, data):
        ''' Apply the natively deserialized ordereddict into
        self._fields.
        '''
        cls = type(self)
        
        for field in self.fields:
            descriptor = getattr(cls, field)
            
            # Configs with incomplete data keep the defaults
            if data is None or field not in data:
                logger.warning('Healed config w/ missing field: ' + field)
                
            else:
                try:
                    # Note that the descriptor handles nested fields
                    self._fields[field] = descriptor.decode(data[field])
                    
                except Exception as exc:
                    raise ConfigError('Failed to decode field: ' +
                                      field) from exc
                    
    def __repr__(self):
        rep = type(self).__name__ + '('
        for field in self.fields:
            rep += field + '=' + repr(getattr(self, field)) + ', '
        rep = rep[:-2] + ')'
        return rep
            
    def __eq__(self, other):
        ''' Compare type of self and all fields.
        '''
        mycls = type(self)
        othercls = type(other)
        
        if issubclass(mycls, othercls) or issubclass(othercls, mycls):
            try:
                return self._fields == other._fields
            
            except AttributeError as exc:
                raise TypeError(other) from exc
            
        else:
            return False
        
    # Restore normal hashing
    __hash__ = object.__hash__


class _AutoMapper(type):
    ''' Metaclass used for automatically mapping a structured something
    into objects with properties and names and stuff.
    '''

    # Remember the order of class variable definitions!
    @classmethod
    def __prepare__(mcls, clsname, bases, **kwargs):
        return collections.OrderedDict()

    def __new__(mcls, clsname, bases, namespace, **kwargs):
        fields = []
        parameters = []
        for name, value in namespace.items():
            if name in {'fields', '_fields', '_signature', 'args', 'kwargs'}:
                raise ValueError('Invalid class variable name for ' +
                                 'AutoMapper: ' + name)
            elif isinstance(value, AutoField):
                fields.append(name)
                value.name = name
                # Allow fields to be passed to the constructor
                parameters.append(
                    inspect.Parameter(
                        name = name,
                        kind = inspect.Parameter.POSITIONAL_OR_KEYWORD
                    )
                )
        
        # Support inheritance by adding *args and **kwargs to the signature
        parameters.append(
            inspect.Parameter(
                name = 'args',
                kind = inspect.Parameter.VAR_POSITIONAL
            )
        )
        parameters.append(
            inspect.Parameter(
                name = 'kwargs',
                kind = inspect.Parameter.VAR_KEYWORD
            )
        )
        
        bases = (_AutoMapperMixin, *bases)
        cls = super().__new__(mcls, clsname, bases, dict(namespace), **kwargs)
        cls.fields = fields
        # This signature is for aforementioned binding
        cls._signature = inspect.Signature(parameters)
        return cls


class Instrumentation(metaclass=_AutoMapper):
    ''' Logging setup, only applied by Syncs.from_config.
    '''
    verbosity = AutoField(default='warning')
    logdir = AutoField(decode=pathlib.Path, encode=str)
    
    
class ClientConfig(metaclass=_AutoMapper):
    ''' Options for a Syncs client. Every option is independently
    optional; a bare ClientConfig() has the library defaults.
    
    As a YAML file:
    
        auto_connect: true
        auto_reconnect: true
        reconnect_delay: 1.0
        debug: false
        rmi_timeout: null
        instrumentation:
            verbosity: warning
            logdir: null
    '''
    auto_connect = AutoField(default=True, decode=_to_bool)
    auto_reconnect = AutoField(default=True, decode=_to_bool)
    reconnect_delay = AutoField(default=1.0, decode=_to_seconds)
    debug = AutoField(default=False, decode=_to_bool)
    rmi_timeout = AutoField(decode=_to_seconds)
    instrumentation = AutoField(Instrumentation)
    
    TARGET_FNAME = 'syncs.yml'
    ENV_VAR = 'SYNCS_CONFIG'
    
    def __init__(self, *args, path=None, **kwargs):
        super().__init__(*args, **kwargs)
        
        if path is not None:
            path = pathlib.Path(path).absolute()
        self.path = path
        
    @classmethod
    def options(cls):
        ''' The names accepted by from_options.
        '''
        return frozenset(field for field in cls.fields
                         if getattr(cls, field).subfield is None)
        
    @classmethod
    def from_options(cls, base=None, **options):
        ''' Builds a config from keyword options, layered on top of base
        (which is left untouched) if given.
        '''
        unknown = set(options) - cls.options()
        if unknown:
            raise ConfigError('Unknown client options: ' +
                              ', '.join(sorted(unknown)))
        
        if base is None:
            self = cls()
        else:
            self = copy.deepcopy(base)
            
        for name, value in options.items():
            descriptor = getattr(cls, name)
            
            try:
                setattr(self, name, descriptor.decode(value))
                
            except (TypeError, ValueError) as exc:
                raise ConfigError('Bad value for ' + name + ': ' +
                                  repr(value)) from exc
        
        self.validate()
        return self
        
    def validate(self):
        ''' Raises ConfigError if the option values make no sense.
        '''
        if self.reconnect_delay is None or self.reconnect_delay < 0:
            raise ConfigError('reconnect_delay must be zero or more seconds.')
            
        if self.rmi_timeout is not None and self.rmi_timeout <= 0:
            raise ConfigError('rmi_timeout must be positive (or None).')
        
    @classmethod
    def find(cls):
        ''' Automatically locates any existing config file. Raises
        ConfigMissing if unable to locate.
        
        Search order:
        1.  Environment variable "SYNCS_CONFIG"
        2.  Current directory
        3.  ~/.syncs
        '''
        search_order = []
        
        envpath = os.getenv(cls.ENV_VAR)
        if envpath:
            search_order.append(pathlib.Path(envpath))
            
        search_order.append(pathlib.Path('.').absolute() / cls.TARGET_FNAME)
        search_order.append(pathlib.Path.home() / '.syncs' / cls.TARGET_FNAME)
        
        for fpath in search_order:
            if fpath.is_file():
                break
        # Not found; raise.
        else:
            raise ConfigMissing(
                'No ' + cls.TARGET_FNAME + ' found in: ' +
                ', '.join(str(fpath) for fpath in search_order)
            )
        
        logger.info('Using config at ' + str(fpath))
        return cls.load(fpath)
                
    @classmethod
    def load(cls, path):
        ''' Load a config from a path.
        '''
        path = pathlib.Path(path)
        cfg_txt = path.read_text()
        self = cls(path=path)
        self.decode(cfg_txt)
        
        return self
        
    def dump(self, path=None):
        ''' Dump a config to a path (by default, the one we came from).
        '''
        if path is None:
            path = self.path
            
        if path is None:
            raise ConfigError('No path to dump config to.')
        
        pathlib.Path(path).write_text(self.encode())
        
    def reload(self):
        ''' Reload an existing config.
        '''
        cfg_txt = self.path.read_text()
        self.decode(cfg_txt)
    
    def encode(self):
        ''' Converts the config into an encoded file ready for output.
        '''
        raw_cfg = self.entranscode()
        return yaml.dump(raw_cfg, default_flow_style=False)
        
    def decode(self, data):
        ''' Load an existing config. JSON is valid yaml, so this will
        also load JSON configs without any extra effort.
        '''
        try:
            raw_cfg = yaml.safe_load(data)
        except yaml.YAMLError as exc:
            raise ConfigError('Config is not valid YAML.') from exc
        
        if raw_cfg is not None and not isinstance(raw_cfg, dict):
            raise ConfigError('Config must be a mapping.')
            
        self.detranscode(raw_cfg)
        self.validate()
