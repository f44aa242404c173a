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


import logging
import asyncio
import websockets
import websockets.exceptions
import traceback
import base64
import loopa

from loopa.utils import make_background_future

# Internal deps
from .codec import pack

from .exceptions import ConnectionClosed

from .utils import call_listener


# ###############################################
# Boilerplate
# ###############################################


__all__ = [
    'WSConnection',
    'ConnectionManager',
]


logger = logging.getLogger(__name__)


# ###############################################
# Lib
# ###############################################


class _ConnectionBase:
    ''' Defines common interface for all connections: a transport that
    can be opened with new(), written to in order with send_nowait(),
    and listened to until it closes.
    '''
    
    def __init__(self, *args, **kwargs):
        ''' Log the creation of the connection.
        '''
        super().__init__(*args, **kwargs)
        # Create a reference to ourselves so that we can manage our own
        # lifetime through self.terminate()
        self._ref = self
        # Outgoing frames, written in order by drain_forever()
        self._send_q = asyncio.Queue()
        
        # Memoize our repr as the hex repr of our id(self)
        self._repr = '<' + type(self).__name__ + ' ' + hex(id(self)) + '>'
        # Memoize a urlsafe base64 string of our id(self) for str
        self._str = str(
            base64.urlsafe_b64encode(
                id(self).to_bytes(byteorder='big', length=8)
            ),
            'utf-8'
        )
        logger.info('CONN ' + str(self) + ' CREATED.')
        
    def terminate(self):
        ''' Marks the connection dead. Idempotent.
        '''
        try:
            del self._ref
            
        except AttributeError:
            logger.debug('CONN ' + str(self) + ' already terminated.')
            
    def __bool__(self):
        ''' Return True if the connection is still active and False
        otherwise.
        '''
        return hasattr(self, '_ref')
        
    def __repr__(self):
        # Example: <WSConnection 0x52b2978>
        return self._repr
        
    def __str__(self):
        ''' Constant-length base64 of our id.
        '''
        return self._str
        
    def send_nowait(self, frame):
        ''' Queues a frame for sending. Frames go out in the order they
        were queued.
        '''
        if not self:
            raise ConnectionClosed('CONN ' + str(self) + ' is closed.')
            
        self._send_q.put_nowait(frame)
        
    async def drain_forever(self):
        ''' Writes queued frames until the connection terminates.
        '''
        while self:
            frame = await self._send_q.get()
            await self.send(frame)
            logger.debug('CONN ' + str(self) + ' frame sent.')
        
    async def listener(self, receiver):
        ''' Waits for a single frame and hands it to the receiver.
        Receiver failures are logged; closure raises ConnectionClosed.
        '''
        try:
            frame = await self.recv()
        
        except ConnectionClosed:
            logger.info('CONN ' + str(self) + ' closed at listener.')
            raise
            
        else:
            logger.debug('CONN ' + str(self) + ' frame received.')
            
            try:
                await receiver(self, frame)
                
            except asyncio.CancelledError:
                raise
            
            except Exception:
                logger.error(
                    'CONN ' + str(self) + ' Listener receiver ' +
                    'raised w/ traceback:\n' + ''.join(traceback.format_exc())
                )
                
    async def listen_forever(self, receiver):
        ''' Listens until the connection terminates.
        '''
        while self:
            await self.listener(receiver)
            
    async def run(self, receiver):
        ''' Drains outgoing frames and listens for incoming ones, until
        either side fails. Raises ConnectionClosed when the transport
        goes away.
        '''
        drainer = asyncio.ensure_future(self.drain_forever())
        listener = asyncio.ensure_future(self.listen_forever(receiver))
        
        try:
            finished, pending = await asyncio.wait(
                fs = {drainer, listener},
                return_when = asyncio.FIRST_COMPLETED
            )
        
        finally:
            # Cancel whichever is left (or both, if we were cancelled)
            drainer.cancel()
            listener.cancel()
            
        for task in finished:
            # Propagates ConnectionClosed from whichever side saw it first
            task.result()
        
    @classmethod
    async def new(cls, *args, **kwargs):
        ''' Creates and returns a new connection.
        '''
        raise NotImplementedError()
    
    async def close(self):
        ''' Closes the existing connection, performing any necessary
        cleanup.
        '''
        raise NotImplementedError()
    
    async def send(self, frame):
        ''' Does whatever is needed to send a frame.
        '''
        raise NotImplementedError()
    
    async def recv(self):
        ''' Waits for first available frame and returns it.
        '''
        raise NotImplementedError()


class WSConnection(_ConnectionBase):
    ''' Bookkeeping object for a single client websocket connection.
    '''
    
    def __init__(self, websocket, url=None, *args, **kwargs):
        super().__init__(*args, **kwargs)
        
        self.websocket = websocket
        self.url = url
        
    @classmethod
    async def new(cls, url):
        ''' Opens a websocket to the url. If this raises, we don't need
        to worry about closing, because the websocket won't exist.
        '''
        websocket = await websockets.connect(url)
        return cls(websocket=websocket, url=url)
        
    async def close(self):
        ''' Wraps websocket.close and calls self.terminate().
        '''
        try:
            # Idempotent, so a double close is harmless.
            await self.websocket.close()
        finally:
            self.terminate()
        
    async def send(self, frame):
        ''' Send from the same event loop as the websocket.
        '''
        try:
            return (await self.websocket.send(frame))
        
        except websockets.exceptions.ConnectionClosed as exc:
            try:
                raise ConnectionClosed() from exc
                
            finally:
                self.terminate()
        
    async def recv(self):
        ''' Receive from the same event loop as the websocket.
        '''
        try:
            return (await self.websocket.recv())
        
        except websockets.exceptions.ConnectionClosed as exc:
            try:
                raise ConnectionClosed() from exc
                
            finally:
                self.terminate()
    
    
class ConnectionManager(loopa.TaskLooper):
    ''' Use this client-side to establish (and, whenever the connection
    drops, re-establish) a connection with a Syncs server.
    
    Every loop_run is one connection lifetime: wait until a connection
    is requested, open the transport, listen until it closes, and then
    apply the close policy. Intentional closes (or drops with
    auto_reconnect disabled) fire the close listener; any other drop
    fires the disconnect listener and schedules a reconnect after
    config.reconnect_delay.
    
    The connection is only "online" once the server has completed the
    socket id handshake.
    '''
    
    def __init__(self, url, connection_cls, msg_handler, config, *args,
                 **kwargs):
        ''' msg_handler will be awaited with (connection, frame) for
        every incoming frame.
        '''
        super().__init__(*args, **kwargs)
        
        self.url = url
        self.connection_cls = connection_cls
        self.protocol_def = msg_handler
        self.config = config
        
        self.online = False
        self.socket_id = None
        self.handled_close = False
        
        self._connection = None
        self._connecting = False
        self._conn_requested = None
        self._connect_pending = bool(config.auto_connect)
        self._reconnect_timer = None
        
        self._open_listener = None
        self._close_listener = None
        self._disconnect_listener = None
        self._message_listeners = []
        
    async def loop_init(self, *args, **kwargs):
        ''' Creates the connection request flag, honoring any connect()
        made before the loop started (including auto_connect).
        '''
        await super().loop_init(*args, **kwargs)
        self._conn_requested = asyncio.Event()
        
        if self._connect_pending:
            self._connect_pending = False
            self._conn_requested.set()
            
    async def loop_stop(self, *args, **kwargs):
        ''' Reset everything that only makes sense with a running loop.
        '''
        await super().loop_stop(*args, **kwargs)
        self._cancel_reconnect()
        self._conn_requested = None
        self._connection = None
        self._connecting = False
        self.online = False
        
    async def loop_run(self):
        ''' Creates a connection and listens until it closes.
        '''
        await self._conn_requested.wait()
        self._conn_requested.clear()
        self._connecting = True
        
        try:
            connection = await self.connection_cls.new(self.url)
            
        # Need to catch this specifically, lest we accidentally swallow it
        except asyncio.CancelledError:
            self._connecting = False
            raise
            
        # Transport failures are only ever surfaced through the close path.
        except Exception:
            self._connecting = False
            logger.error(
                'Failed to establish connection to ' + str(self.url) +
                ' with traceback:\n' + ''.join(traceback.format_exc())
            )
            
        else:
            self._connecting = False
            self._connection = connection
            
            try:
                # disconnect() was called while we were still opening.
                if not self.handled_close:
                    await connection.run(receiver=self.protocol_def)
                
            except ConnectionClosed:
                logger.info('CONN ' + str(connection) + ' closed.')
                
            except asyncio.CancelledError:
                raise
                
            except Exception:
                logger.error(
                    'CONN ' + str(connection) + ' failed w/ traceback:\n' +
                    ''.join(traceback.format_exc())
                )
                
            # No matter what happens, when this dies we need to clean up the
            # connection and tell everyone that we cannot send anymore.
            finally:
                self._connection = None
                self.online = False
                await self._close_quietly(connection)
        
        self._handle_close()
        
    async def _close_quietly(self, connection):
        ''' Closes a connection, logging instead of raising.
        '''
        try:
            await connection.close()
            
        except asyncio.CancelledError:
            raise
            
        except Exception:
            logger.warning(
                'CONN ' + str(connection) + ' raised while closing w/ ' +
                'traceback:\n' + ''.join(traceback.format_exc())
            )
            
    def _handle_close(self):
        ''' The close policy. This is the only place where the
        connection state changes after a transport goes away.
        '''
        self.online = False
        
        if self.handled_close or not self.config.auto_reconnect:
            self.handled_close = False
            logger.info('Connection to ' + str(self.url) + ' closed.')
            self.connection_terminated()
            call_listener(self._close_listener, self)
            
        else:
            logger.warning(
                'Connection to ' + str(self.url) + ' dropped. Reconnecting ' +
                'in {:.3f} seconds.'.format(self.config.reconnect_delay)
            )
            call_listener(self._disconnect_listener, self)
            self._schedule_reconnect()
            
    def connection_terminated(self):
        ''' Called once a close becomes final (no reconnect follows).
        Subclasses release whatever depended on the connection here.
        '''
        
    def _schedule_reconnect(self):
        loop = asyncio.get_event_loop()
        self._cancel_reconnect()
        self._reconnect_timer = loop.call_later(
            self.config.reconnect_delay,
            self._reconnect
        )
        
    def _cancel_reconnect(self):
        if self._reconnect_timer is not None:
            self._reconnect_timer.cancel()
            self._reconnect_timer = None
            
    def _reconnect(self):
        ''' Timer callback. A manual reconnect may have beaten us here.
        '''
        self._reconnect_timer = None
        
        if self.online:
            logger.debug('Already online; skipping scheduled reconnect.')
        else:
            self.connect()
            
    @property
    def connection(self):
        ''' The current transport, or None.
        '''
        return self._connection
            
    def has_connection(self):
        return self._connection is not None
            
    def connect(self):
        ''' Requests a connection. Does nothing if we're already online,
        or if a transport is already open or opening.
        '''
        if self.online or self._connecting or self._connection is not None:
            logger.debug('Connection already active; ignoring connect().')
            
        # The loop isn't running yet. Remember for loop_init.
        elif self._conn_requested is None:
            self._connect_pending = True
            
        else:
            self._conn_requested.set()
        
    def disconnect(self):
        ''' Closes the connection intentionally. The close listener (not
        the disconnect listener) fires, and nothing is rescheduled.
        '''
        connection = self._connection
        
        if connection is not None:
            self.handled_close = True
            make_background_future(connection.close())
            
        elif self._connecting:
            # loop_run closes the transport as soon as it opens.
            self.handled_close = True
            
        elif self._reconnect_timer is not None:
            logger.info('Disconnected while waiting; reconnect cancelled.')
            self._cancel_reconnect()
            
        else:
            # A connect() that loop_run hasn't picked up yet is withdrawn.
            self._connect_pending = False
            if self._conn_requested is not None:
                self._conn_requested.clear()
            logger.info('disconnect() called without a connection.')
            
    def on_open(self, callback):
        ''' Sets the open listener, called with the client once the
        server completes the socket id handshake.
        '''
        self._open_listener = callback
        
    def on_close(self, callback):
        ''' Sets the close listener, called with the client on every
        intentional (or final) close.
        '''
        self._close_listener = callback
        
    def on_disconnect(self, callback):
        ''' Sets the disconnect listener, called with the client when
        the connection drops and a reconnect is scheduled.
        '''
        self._disconnect_listener = callback
        
    def on_message(self, listener):
        ''' Adds a listener for plain (non-command) messages.
        '''
        self._message_listeners.append(listener)
        
    @property
    def message_listeners(self):
        return tuple(self._message_listeners)
        
    def enable_debug_mode(self):
        self.config.debug = True
        
    def disable_debug_mode(self):
        self.config.debug = False
        
    def handle_get_socket_id(self, command):
        ''' The server wants to know who we are. Report our socket id,
        and silently resume the session if we already had one.
        '''
        if self.socket_id:
            self.send_command(
                {'type': 'reportSocketId', 'socketId': self.socket_id}
            )
            self.online = True
            logger.info('Resumed session ' + str(self.socket_id) + '.')
            call_listener(self._open_listener, self)
            
        else:
            self.send_command({'type': 'reportSocketId', 'socketId': None})
            
    def handle_set_socket_id(self, command):
        ''' The server assigned us a (new) socket id. We're online.
        '''
        self.socket_id = command.get('socketId')
        self.online = True
        logger.info('Assigned socket id ' + str(self.socket_id) + '.')
        call_listener(self._open_listener, self)
        
    def _transmit(self, message):
        ''' Packs and queues a message on the current transport.
        '''
        connection = self._connection
        
        if connection is None:
            logger.debug('No connection; message not sent.')
            return False
        
        frame = pack(message)
        
        try:
            connection.send_nowait(frame)
            
        except ConnectionClosed:
            logger.debug('CONN ' + str(connection) + ' closed; not sent.')
            return False
            
        else:
            return True
            
    def send(self, message):
        ''' Sends a plain message. Returns False (and sends nothing)
        unless we're online.
        '''
        if not self.online:
            return False
            
        return self._transmit(message)
        
    def send_command(self, message):
        ''' Marks the message as a command and sends it. Unlike send(),
        this works before the handshake completes. Never raises;
        failures are logged and reported as False.
        '''
        try:
            message['command'] = True
            
            if self.config.debug:
                logger.info('⬆ OUTPUT COMMAND: ' + repr(message))
                
            return self._transmit(message)
            
        except Exception:
            logger.error(
                'Failed to send command w/ traceback:\n' +
                ''.join(traceback.format_exc())
            )
            return False
