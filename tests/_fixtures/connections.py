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


import asyncio

from syncs.codec import pack
from syncs.codec import unpack
from syncs.comms import _ConnectionBase
from syncs.exceptions import ConnectionClosed


# Sentinel that makes recv() raise ConnectionClosed, like a dropped socket.
_HANGUP = object()


class LoopbackConnection(_ConnectionBase):
    ''' An in-memory transport. Tests play the server: feed() frames in,
    and read what the client sent from sent_messages().
    
    Use connection_factory() to get a subclass with its own bookkeeping.
    '''
    attempts = None
    opened = None
    refuse = False
    # If set, new() waits for this asyncio.Event before connecting
    gate = None
    
    def __init__(self, url, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.url = url
        self.sent = []
        self.inbox = asyncio.Queue()
        self.closed_by_client = False
        
    @classmethod
    async def new(cls, url):
        cls.attempts.append(url)
        
        if cls.gate is not None:
            await cls.gate.wait()
        
        if cls.refuse:
            raise ConnectionRefusedError(url)
            
        self = cls(url)
        cls.opened.append(self)
        return self
        
    async def close(self):
        self.closed_by_client = True
        self.inbox.put_nowait(_HANGUP)
        self.terminate()
        
    async def send(self, frame):
        if self.closed_by_client:
            raise ConnectionClosed()
        self.sent.append(frame)
        
    async def recv(self):
        frame = await self.inbox.get()
        
        if frame is _HANGUP:
            self.terminate()
            raise ConnectionClosed()
            
        return frame
        
    def feed(self, message):
        self.inbox.put_nowait(pack(message))
        
    def feed_raw(self, frame):
        self.inbox.put_nowait(frame)
        
    def hangup(self):
        ''' Server-side drop.
        '''
        self.inbox.put_nowait(_HANGUP)
        
    def sent_messages(self):
        return [unpack(frame) for frame in self.sent]
        
    def sent_commands(self, command_type=None):
        return [
            message for message in self.sent_messages()
            if message.get('command') and
            (command_type is None or message.get('type') == command_type)
        ]


def connection_factory(refuse=False):
    ''' Returns a fresh LoopbackConnection subclass, so that each test
    gets its own record of connection attempts.
    '''
    return type(
        'LoopbackConnection',
        (LoopbackConnection,),
        {'attempts': [], 'opened': [], 'refuse': refuse}
    )


async def settle(rounds=20):
    ''' Lets the loop run every callback that is ready right now.
    '''
    for __ in range(rounds):
        await asyncio.sleep(0)


async def drive(client):
    ''' Runs the client's connection lifetimes back to back, the way
    its loopa task would.
    '''
    await client.loop_init()
    
    try:
        while True:
            await client.loop_run()
            
    finally:
        await client.loop_stop()
