import io
import os
import logging
from contextlib import contextmanager


logger = logging.getLogger(__name__)


class Stream(object):
    '''This is a simple wrapper around bytes/file objects to uniform their
    properties: mainly we need a seek() that returns the stream itself and
    the possibility to save and restore the position.

    A Stream is not thread-safe: every operation on it moves the underlying
    cursor, so one parse must own one stream.'''
    def __init__(self, obj, flags='r'):
        '''Here we normalize the object in order to be accessed as a normal file object'''
        self._owned = False
        self._type = type(obj)
        self.flags = flags
        self.obj = obj
        self.history = []

        if isinstance(obj, Stream):
            self.obj = obj.obj
            return

        init_method_name = 'init_%s' % self.obj.__class__.__name__

        init_method = getattr(self, init_method_name, None)

        if init_method is None:
            if isinstance(obj, os.PathLike):
                init_method = self.init_str
            elif hasattr(obj, 'read') and hasattr(obj, 'seek'):
                init_method = self.init_file
            else:
                raise ValueError('\'%s\' cannot be used as a stream' % obj.__class__.__name__)

        init_method()

    def __getattr__(self, name):
        return getattr(self.__dict__['obj'], name)

    def __repr__(self):
        return '<%s(%r)>' % (self.__class__.__name__, self.obj)

    def __del__(self):
        if self.__dict__.get('_owned'):
            self.obj.close()

    def init_str(self):
        '''We think this is a path'''
        logger.debug('opening path \'%s\'' % self.obj)
        self.obj = open(self.obj, 'rb')
        self._owned = True

    def init_bytes(self):
        '''We think these are raw bytes'''
        self.obj = io.BytesIO(self.obj)

    def init_bytearray(self):
        self.obj = io.BytesIO(bytes(self.obj))

    def init_file(self):
        '''Already a file-like object, the caller is in charge of closing it'''
        pass

    def seek(self, offset, whence=io.SEEK_SET):
        if not isinstance(offset, int):
            raise ValueError('\'%s\' is the wrong kind of offset to use' % offset.__class__.__name__)

        self.obj.seek(offset, whence)

        return self

    def read_all(self):
        return self.obj.read()

    def write(self, data):
        return self.obj.write(data)

    def size(self):
        '''Returns the total length of the stream without moving the cursor'''
        with self.preserve():
            return self.obj.seek(0, io.SEEK_END)

    def save(self):
        self.history.append(self.obj.tell())

    def restore(self):
        old_seek = self.history.pop()
        self.obj.seek(old_seek)

    @contextmanager
    def preserve(self):
        self.save()
        try:
            yield self
        finally:
            self.restore()
