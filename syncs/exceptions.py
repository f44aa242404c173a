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


# Control * imports.
__all__ = [
    # Base class for all of the below
    'SyncsException',
    # These are comms errors
    'CommsError',
    'ConnectionClosed',
    # These are RMI errors
    'RemoteCallError',
    'RemoteFunctionUndefined',
    'RemoteFunctionError',
    'RemoteCallTimeout',
    # These are shared object errors
    'SharedObjectError',
    'ReadOnlySharedObject',
    # These are config errors
    'ConfigError',
    'ConfigMissing',
]


class SyncsException(Exception):
    ''' Base class for everything raised by syncs. Catch this to catch
    any library error with a single except.
    '''
    pass
    
    
class CommsError(SyncsException, RuntimeError):
    ''' Raised when something goes wrong with the connection to the
    Syncs server.
    '''
    pass
    
    
class ConnectionClosed(CommsError):
    ''' Raised when the transport closed underneath a send or receive,
    and used to fail any remote calls still pending when the client
    closes for good.
    '''
    pass
    
    
class RemoteCallError(CommsError):
    ''' Raised (through the returned future) when a remote invocation
    comes back with an error. The raw wire value is kept as self.error.
    '''
    
    def __init__(self, error=None, *args):
        if error is None:
            super().__init__(*args)
        else:
            super().__init__(error, *args)
        self.error = error
    
    
class RemoteFunctionUndefined(RemoteCallError):
    ''' The peer has no function registered under the requested name.
    '''
    pass
    
    
class RemoteFunctionError(RemoteCallError):
    ''' The remote function raised (or its result was rejected).
    '''
    pass
    
    
class RemoteCallTimeout(RemoteCallError):
    ''' No rmi-result arrived within the configured rmi_timeout.
    '''
    pass
    
    
class SharedObjectError(SyncsException, RuntimeError):
    ''' Raised when something goes wrong with a shared object.
    '''
    pass
    
    
class ReadOnlySharedObject(SharedObjectError):
    ''' Raised by the reactive view when assigning to a GLOBAL or GROUP
    shared object. Only the server may author those.
    '''
    pass
    
    
class ConfigError(SyncsException, RuntimeError):
    ''' This exception (or a subclass thereof) is raised for all failed
    operations with configuration.
    '''
    pass
    
    
class ConfigMissing(ConfigError):
    ''' Raised when no configuration file could be found.
    '''
    pass
