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
import datetime
import pathlib
import sys


# ###############################################
# Boilerplate
# ###############################################


# Control * imports.
__all__ = [
    'autoconfig',
]


# ###############################################
# Library
# ###############################################


LOGLEVELS = {
    'debug': logging.DEBUG,
    'info': logging.INFO,
    'warning': logging.WARNING,
    'error': logging.ERROR,
}


def _next_logname(logdir, logname):
    ''' Picks an unused file name for today within logdir.
    '''
    date = str(datetime.date.today())
    ext = '.pylog'
    
    ii = 0
    while (logdir / (logname + '_' + date + '_' + str(ii) + ext)).exists():
        ii += 1
        
    return logdir / (logname + '_' + date + '_' + str(ii) + ext)


def autoconfig(tofile=False, logdirname='logs', loglevel='warning',
               logname='syncs'):
    ''' Sets up the root logger for an application using syncs. Returns
    the handler that was added. Unknown log levels mean warning.
    '''
    # Calculate the logging level
    try:
        loglevel = LOGLEVELS[str(loglevel).lower()]
    except KeyError:
        loglevel = logging.WARNING
    
    # Make a log handler
    if tofile:
        logdir = pathlib.Path(logdirname)
        logdir.mkdir(parents=True, exist_ok=True)
        fname = _next_logname(logdir, logname)
        loghandler = logging.FileHandler(str(fname))
        
    else:
        loghandler = logging.StreamHandler(sys.stderr)
        
    loghandler.setFormatter(
        logging.Formatter(
            '%(threadName)-7s %(name)-12s: %(levelname)-8s %(message)s'
        )
    )
    
    # Add to root logger
    logging.getLogger('').addHandler(loghandler)
    logging.getLogger('').setLevel(loglevel)
        
    # Silence the froth
    logging.getLogger('asyncio').setLevel(logging.WARNING)
    logging.getLogger('websockets').setLevel(logging.WARNING)
    
    return loghandler
