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
import tempfile
import pathlib
import os

from syncs.config import ClientConfig
from syncs.config import Instrumentation

from syncs.exceptions import ConfigError
from syncs.exceptions import ConfigMissing


# ###############################################
# Fixtures and vectors
# ###############################################


vec_cfg = '''auto_connect: false
auto_reconnect: true
reconnect_delay: 2.5
debug: true
rmi_timeout: 10.0
instrumentation:
  verbosity: info
  logdir: /tmp/syncs-logs
'''


vec_cfg_json = '''
    {
        "auto_connect": false,
        "auto_reconnect": true,
        "reconnect_delay": 2.5,
        "debug": true,
        "rmi_timeout": 10,
        "instrumentation": {
            "verbosity": "info",
            "logdir": "/tmp/syncs-logs"
        }
    }
'''


vec_cfg_partial = '''
    reconnect_delay: 0.5
'''


obj_instrumentation = Instrumentation('info', pathlib.Path('/tmp/syncs-logs'))
obj_cfg = ClientConfig(
    auto_connect = False,
    auto_reconnect = True,
    reconnect_delay = 2.5,
    debug = True,
    rmi_timeout = 10.0,
    instrumentation = obj_instrumentation
)


# ###############################################
# Testing
# ###############################################
        

class CfgSerialTest(unittest.TestCase):
    ''' Test config serialization.
    '''
    
    def test_encode(self):
        self.assertEqual(obj_cfg.encode(), vec_cfg)
        
    def test_decode(self):
        decoded = ClientConfig()
        decoded.decode(vec_cfg)
        self.assertEqual(decoded, obj_cfg)
        
    def test_json(self):
        ''' JSON is valid YAML.
        '''
        decoded = ClientConfig()
        decoded.decode(vec_cfg_json)
        self.assertEqual(decoded, obj_cfg)
        
    def test_heal(self):
        decoded = ClientConfig()
        
        with self.assertLogs('syncs.config', level='WARNING'):
            decoded.decode(vec_cfg_partial)
            
        self.assertEqual(decoded.reconnect_delay, 0.5)
        self.assertTrue(decoded.auto_connect)
        self.assertEqual(decoded.instrumentation, Instrumentation())
        
    def test_decode_bad(self):
        bad_cfgs = [
            'reconnect_delay: soon',
            'reconnect_delay: -1',
            'debug: maybe',
            '- just\n- a list',
            'rmi_timeout: 0',
            '[unclosed',
        ]
        
        for vec in bad_cfgs:
            with self.subTest(vec):
                with self.assertRaises(ConfigError):
                    ClientConfig().decode(vec)
                    
    def test_load_dump(self):
        with tempfile.TemporaryDirectory() as root:
            path = pathlib.Path(root) / 'syncs.yml'
            obj_cfg.dump(path)
            loaded = ClientConfig.load(path)
            
            self.assertEqual(loaded, obj_cfg)
            self.assertEqual(loaded.path, path.absolute())
            
            loaded.debug = False
            loaded.dump()
            loaded.reload()
            self.assertFalse(loaded.debug)
            self.assertFalse(ClientConfig.load(path).debug)
            
    def test_dump_nowhere(self):
        with self.assertRaises(ConfigError):
            ClientConfig().dump()
                
                
class ConfigTest(unittest.TestCase):
    ''' Defaults, options, and finding configs.
    '''
    
    def test_defaults(self):
        config = ClientConfig()
        self.assertTrue(config.auto_connect)
        self.assertTrue(config.auto_reconnect)
        self.assertEqual(config.reconnect_delay, 1.0)
        self.assertFalse(config.debug)
        self.assertIsNone(config.rmi_timeout)
        self.assertEqual(config.instrumentation.verbosity, 'warning')
        self.assertIsNone(config.instrumentation.logdir)
        
    def test_from_options(self):
        config = ClientConfig.from_options(
            auto_reconnect = False,
            reconnect_delay = 3,
            debug = 'yes'
        )
        self.assertFalse(config.auto_reconnect)
        self.assertEqual(config.reconnect_delay, 3.0)
        self.assertIs(config.debug, True)
        
    def test_from_options_base(self):
        config = ClientConfig.from_options(base=obj_cfg, debug=False)
        self.assertFalse(config.debug)
        self.assertEqual(config.reconnect_delay, 2.5)
        # The base is left untouched
        self.assertTrue(obj_cfg.debug)
        
    def test_from_options_bad(self):
        bad_options = [
            {'reconnectDelay': 1},
            {'instrumentation': None},
            {'reconnect_delay': -1},
            {'reconnect_delay': True},
            {'rmi_timeout': 0},
            {'auto_connect': 'sometimes'},
        ]
        
        for options in bad_options:
            with self.subTest(options):
                with self.assertRaises(ConfigError):
                    ClientConfig.from_options(**options)
        
    def test_find_cfg_from_env(self):
        with tempfile.TemporaryDirectory() as root:
            os.environ['SYNCS_CONFIG'] = str(pathlib.Path(root) / 'c.yml')
            
            try:
                fake_config = pathlib.Path(root) / 'c.yml'
                fake_config.write_text(vec_cfg)
                config = ClientConfig.find()
                self.assertEqual(config.path, fake_config.absolute())
                self.assertEqual(config, obj_cfg)
            finally:
                del os.environ['SYNCS_CONFIG']
                
    def test_find_cfg_from_cwd(self):
        cwd = os.getcwd()
        
        with tempfile.TemporaryDirectory() as root:
            os.chdir(root)
            
            try:
                fake_config = pathlib.Path(root) / 'syncs.yml'
                fake_config.write_text(vec_cfg_partial)
                
                with self.assertLogs('syncs.config', level='WARNING'):
                    config = ClientConfig.find()
                    
                self.assertEqual(config.reconnect_delay, 0.5)
            finally:
                os.chdir(cwd)
                
    def test_find_nothing(self):
        cwd = os.getcwd()
        home = os.environ.get('HOME')
        
        with tempfile.TemporaryDirectory() as root:
            os.chdir(root)
            os.environ['HOME'] = root
            os.environ['SYNCS_CONFIG'] = str(pathlib.Path(root) / 'nope.yml')
            
            try:
                with self.assertRaises(ConfigMissing):
                    ClientConfig.find()
                    
            finally:
                os.chdir(cwd)
                del os.environ['SYNCS_CONFIG']
                if home is None:
                    del os.environ['HOME']
                else:
                    os.environ['HOME'] = home


if __name__ == "__main__":
    unittest.main()
