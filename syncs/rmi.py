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
import collections.abc
import inspect
import traceback
import uuid

# Intra-package dependencies
from .exceptions import RemoteCallError
from .exceptions import RemoteCallTimeout
from .exceptions import RemoteFunctionUndefined
from .exceptions import RemoteFunctionError


# ###############################################
# Boilerplate
# ###############################################


import logging
logger = logging.getLogger(__name__)

# Control * imports.
__all__ = [
    'FunctionRegistry',
    'RemoteProxy',
    'RMIManager',
]


# ###############################################
# Library
# ###############################################


# Wire error code -> exception class, and back again.
ERROR_CODES = {
    'undefined': RemoteFunctionUndefined,
    'function error': RemoteFunctionError,
}
ERROR_LOOKUP = {exc_cls: code for code, exc_cls in ERROR_CODES.items()}


def error_to_exception(error):
    ''' Converts a wire error into an (un-raised) exception instance.
    '''
    try:
        exc_cls = ERROR_CODES[error]
    except (KeyError, TypeError):
        exc_cls = RemoteCallError
        
    return exc_cls(error)
    
    
class FunctionRegistry(collections.abc.MutableMapping):
    ''' The functions the server may invoke on us, by name. Supports
    registry['name'] = fn and registry.name = fn as shorthand for
    registry.register('name', fn).
    '''
    
    def __init__(self):
        object.__setattr__(self, '_functions', {})
        
    def register(self, name, fn):
        self._functions[name] = fn
        return fn
        
    def invoke(self, name, args):
        ''' Calls the function, returning whatever it returns. Raises
        KeyError if no such function has been registered.
        '''
        fn = self._functions[name]
        return fn(*args)
        
    def __getitem__(self, name):
        return self._functions[name]
        
    def __setitem__(self, name, fn):
        self.register(name, fn)
        
    def __delitem__(self, name):
        del self._functions[name]
        
    def __iter__(self):
        return iter(self._functions)
        
    def __len__(self):
        return len(self._functions)
        
    def __getattr__(self, name):
        if name.startswith('_'):
            raise AttributeError(name)
        
        try:
            return self._functions[name]
        except KeyError as exc:
            raise AttributeError(name) from exc
        
    def __setattr__(self, name, fn):
        self.register(name, fn)
        
    def __delattr__(self, name):
        try:
            del self._functions[name]
        except KeyError as exc:
            raise AttributeError(name) from exc
            
    def __repr__(self):
        return '<FunctionRegistry ' + repr(sorted(self._functions)) + '>'


class RemoteProxy:
    ''' remote.some_name(*args) and remote['some-name'](*args) are both
    shorthand for manager.call(name, *args).
    '''
    __slots__ = ('_manager',)
    
    def __init__(self, manager):
        self._manager = manager
        
    def __getattr__(self, name):
        if name.startswith('_'):
            raise AttributeError(name)
        return self[name]
        
    def __getitem__(self, name):
        manager = self._manager
        
        def remote_call(*args):
            return manager.call(name, *args)
            
        remote_call.__name__ = str(name)
        remote_call.__qualname__ = 'remote.' + str(name)
        return remote_call


class RMIManager:
    ''' Both halves of remote method invocation. Outgoing calls are
    tracked by correlation id until their rmi-result arrives; incoming
    invocations are answered with exactly one rmi-result each.
    '''
    
    def __init__(self, client):
        self._client = client
        self.functions = FunctionRegistry()
        self.remote = RemoteProxy(self)
        # Lookup: call id -> future
        self._pending = {}
        
    @property
    def pending(self):
        return frozenset(self._pending)
        
    def call(self, name, *args):
        ''' Invokes a function on the server. Returns a future for its
        result. If the command cannot be sent right now, the call stays
        pending, since the server may still answer after a resume.
        '''
        loop = asyncio.get_event_loop()
        call_id = str(uuid.uuid4())
        future = loop.create_future()
        self._pending[call_id] = future
        
        future.add_done_callback(
            lambda fut, call_id=call_id: self._discard(call_id, fut)
        )
        
        timeout = self._client.config.rmi_timeout
        if timeout is not None:
            handle = loop.call_later(
                timeout, self._expire, call_id, name, timeout
            )
            future.add_done_callback(lambda fut: handle.cancel())
        
        sent = self._client.send_command({
            'type': 'rmi',
            'name': name,
            'args': list(args),
            'id': call_id,
        })
        
        if not sent:
            logger.info(
                'RMI call ' + call_id + ' to ' + repr(name) + ' not yet sent.'
            )
        
        return future
        
    def _discard(self, call_id, future):
        ''' Drops the pending entry once its future is done, but only if
        the entry still refers to that future.
        '''
        if self._pending.get(call_id) is future:
            del self._pending[call_id]
            
    def _expire(self, call_id, name, timeout):
        future = self._pending.pop(call_id, None)
        
        if future is not None and not future.done():
            future.set_exception(RemoteCallTimeout(
                'Call to ' + repr(name) + ' got no result within ' +
                str(timeout) + ' seconds.'
            ))
        
    def handle_result(self, command):
        ''' An rmi-result for one of our calls.
        '''
        call_id = command.get('id')
        
        try:
            future = self._pending.pop(call_id)
            
        except (KeyError, TypeError):
            logger.warning(
                'Ignoring rmi-result with unknown id ' + repr(call_id)
            )
            return
            
        if future.done():
            logger.debug('RMI call ' + str(call_id) + ' already finished.')
            
        elif command.get('error') is not None:
            future.set_exception(error_to_exception(command['error']))
            
        else:
            future.set_result(command.get('result'))
        
    def handle_invocation(self, command):
        ''' The server is calling one of our functions.
        '''
        call_id = command.get('id')
        name = command.get('name')
        args = command.get('args')
        
        if not isinstance(args, list):
            args = []
        
        try:
            fn = self.functions[name]
        
        except (KeyError, TypeError):
            logger.info('RMI for undefined function ' + repr(name))
            self._reply(call_id, error=ERROR_LOOKUP[RemoteFunctionUndefined])
            return
        
        try:
            result = fn(*args)
        
        except Exception:
            self._log_failure(name)
            self._reply(call_id, error=ERROR_LOOKUP[RemoteFunctionError])
            
        else:
            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                task.add_done_callback(
                    lambda task: self._reply_from_task(call_id, name, task)
                )
            else:
                self._reply(call_id, result=result)
                
    def _reply_from_task(self, call_id, name, task):
        if task.cancelled():
            logger.warning('RMI function ' + repr(name) + ' was cancelled.')
            self._reply(call_id, error=ERROR_LOOKUP[RemoteFunctionError])
            return
        
        exc = task.exception()
        
        if exc is None:
            self._reply(call_id, result=task.result())
            
        else:
            logger.error(
                'RMI function ' + repr(name) + ' failed w/ traceback:\n' +
                ''.join(traceback.format_exception(
                    type(exc), exc, exc.__traceback__
                ))
            )
            self._reply(call_id, error=ERROR_LOOKUP[RemoteFunctionError])
                
    def _log_failure(self, name):
        logger.error(
            'RMI function ' + repr(name) + ' failed w/ traceback:\n' +
            ''.join(traceback.format_exc())
        )
        
    def _reply(self, call_id, result=None, error=None):
        return self._client.send_command({
            'type': 'rmi-result',
            'id': call_id,
            'result': result,
            'error': error,
        })
        
    def fail_pending(self, exc):
        ''' Rejects every outstanding call with exc. Used when the
        connection is closed for good.
        '''
        pending = list(self._pending.values())
        self._pending.clear()
        
        for future in pending:
            if not future.done():
                future.set_exception(exc)
                
        if pending:
            logger.info(
                'Failed {} pending RMI call(s) with {!r}.'.format(
                    len(pending), exc
                )
            )
