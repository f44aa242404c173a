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


import unittest

from syncs import Syncs
from syncs.codec import pack


# ###############################################
# Testing
# ###############################################


class DispatchTest(unittest.TestCase):
    ''' Frame routing, on a client that never connects.
    '''
    
    def setUp(self):
        self.client = Syncs('ws://syncs.test', auto_connect=False)
        self.dispatcher = self.client.dispatcher
        self.messages = []
        self.client.on_message(self.messages.append)
        
    def test_plain_messages(self):
        other = []
        self.client.on_message(other.append)
        
        self.dispatcher.dispatch_frame(pack({'hello': 'world'}))
        self.dispatcher.dispatch_frame(pack([1, 2, 3]))
        # Not a command without the marker, whatever its type.
        self.dispatcher.dispatch_frame(pack({'type': 'event', 'event': 'x'}))
        
        expected = [{'hello': 'world'}, [1, 2, 3], {'type': 'event',
                                                     'event': 'x'}]
        self.assertEqual(self.messages, expected)
        self.assertEqual(other, expected)
        
    def test_garbage(self):
        for frame in ['%7B', 'null', b'\xff', '']:
            with self.subTest(frame):
                self.dispatcher.dispatch_frame(frame)
        self.assertEqual(self.messages, [])
        
    def test_unknown_command(self):
        self.dispatcher.dispatch({'command': True, 'type': 'reticulate'})
        self.dispatcher.dispatch({'command': True, 'type': ['event']})
        self.assertEqual(self.messages, [])
        
    def test_routing(self):
        received = []
        self.client.subscribe('chat', received.append)
        
        self.dispatcher.dispatch_frame(pack(
            {'command': True, 'type': 'event', 'event': 'chat', 'data': 1}
        ))
        self.dispatcher.dispatch_frame(pack(
            {'command': True, 'type': 'sync', 'scope': 'GLOBAL',
             'name': 'cfg', 'values': {'a': 1}}
        ))
        self.dispatcher.dispatch_frame(pack(
            {'command': True, 'type': 'setSocketId', 'socketId': 'abc'}
        ))
        
        self.assertEqual(received, [1])
        self.assertEqual(self.client.global_shared('cfg').a, 1)
        self.assertEqual(self.client.socket_id, 'abc')
        self.assertTrue(self.client.online)
        self.assertEqual(self.messages, [])
        
    def test_failing_listener(self):
        def bad(message):
            raise RuntimeError(message)
            
        self.client.on_message(bad)
        
        with self.assertLogs('syncs.utils', level='ERROR'):
            self.dispatcher.dispatch({'hello': 'world'})
            
        # The other listener still got it
        self.assertEqual(self.messages, [{'hello': 'world'}])
        
    def test_failing_handler(self):
        def bad(command):
            raise RuntimeError(command)
            
        self.dispatcher._handlers['event'] = bad
        
        with self.assertLogs('syncs.dispatch', level='ERROR'):
            self.dispatcher.dispatch({'command': True, 'type': 'event'})


if __name__ == "__main__":
    unittest.main()
