"""modcrypt.rng - random byte sources used for salt generation

this provides a proxy object named "srandom" which is initialized
to pull bytes from the operating system's CSPRNG, trying each source
in a fixed priority order: :func:`os.urandom` first, then a read
from the system entropy device.
a proxy object is used so applications can provide an alternate
randomness source, and all functions in modcrypt will use that source instead
(see :meth:`RandomProxy.set_rng`).

if none of the strong sources can be used, :func:`getrandbytes` raises
:exc:`~modcrypt.exc.MissingBackendError` rather than quietly degrading.
the time/pid seeded :class:`WeakRandom` source is still available,
but only when explicitly selected via ``srandom.set_rng("weak")``.

this module also provides some utility functions for generating random strings
(:func:`getrandstr` and :func:`getrandbytes`).
"""
#=================================================================================
#imports
#=================================================================================
#core
from binascii import hexlify as _hexlify
from hashlib import md5
import logging; log = logging.getLogger(__name__)
import os
import random as _random
import threading
import time
from warnings import warn
#site
#pkg
from modcrypt.exc import MissingBackendError, ModcryptSecurityWarning
#local
__all__ = [
    # random proxy used by modcrypt
    'srandom',
    'RandomProxy',

    #helpers for creating rng sources
    'StreamRandom',
    'SystemRandom',
    'TieredRandom',
    'WeakRandom',

    #utils not part of stdlib random object
    'getrandbytes',
    'getrandstr',
]

#: path of entropy device used as second tier
URANDOM_DEVICE = "/dev/urandom"

#=================================================================================
#helper class for implementing other random sources
#=================================================================================
_BYTES_PER_FLOAT = int((_random.BPF+7)//8) #number of bytes needed to generate new float
_UNUSED_BITS_PER_FLOAT = _BYTES_PER_FLOAT*8 - _random.BPF #extra bits to discard when generating float
_RECIP_BPF = _random.RECIP_BPF

class StreamRandom(_random.Random):
    """helper which provides Random subclass that pulls all data from single abstract method: getrandbytes()"""
    #NOTE: this basically clones the fallback _random.SystemRandom implementation,
    #but calls self.getrandbytes() instead of a _urandom global

    def __init__(self, getrandbytes=None):
        if getrandbytes:
            if hasattr(getrandbytes, "read"):
                getrandbytes = _stream_reader(getrandbytes)
            self.getrandbytes = getrandbytes
        super(StreamRandom, self).__init__()

    def getrandbytes(self, count):
        "return string containing specified number of random bytes"
        raise NotImplementedError("getrandbytes() must be implemented by subclass or instance constructor")

    def random(self):
        """Get the next random number in the range [0.0, 1.0)."""
        #NOTE: this is just optimized version of getrandbits(_random.BPF) * _random.RECIP_BPF
        return (int(_hexlify(self.getrandbytes(_BYTES_PER_FLOAT)), 16) >> _UNUSED_BITS_PER_FLOAT) * _RECIP_BPF

    def getrandbits(self, k):
        """getrandbits(k) -> x.  Generates an int with k random bits."""
        if k <= 0:
            raise ValueError('number of bits must be greater than zero')
        if k != int(k):
            raise TypeError('number of bits should be an integer')
        count = (k + 7) // 8                    # bits / 8 and rounded up
        x = int(_hexlify(self.getrandbytes(count)), 16)
        return x >> (count * 8 - k)             # trim excess bits

    def seed(self, *args, **kwds):
        "stream sources have no seed; ignored"
        return None

    def _notimplemented(self, *args, **kwds):
        "subclasses may implement these if they wish"
        raise NotImplementedError('%s entropy source does not have state.' % (self.__class__.__name__,))
    getstate = setstate = _notimplemented

def _stream_reader(stream):
    "wrap file-like object so it acts as a getrandbytes() callable"
    def reader(count):
        chunks = []
        remaining = count
        while remaining > 0:
            chunk = stream.read(remaining)
            if not chunk:
                raise EOFError("random stream exhausted")
            chunks.append(chunk)
            remaining -= len(chunk)
        return b"".join(chunks)
    return reader

#=================================================================================
#strong sources
#=================================================================================

#NOTE: this is done mainly to speed up :func:`getrandbytes` calls
class SystemRandom(_random.SystemRandom):
    "subclass of random.SystemRandom which implements getrandbytes as urandom call"
    def getrandbytes(self, count):
        return os.urandom(count)

def _read_device(count, path=URANDOM_DEVICE):
    "read *count* bytes from the system entropy device"
    with open(path, "rb") as fh:
        return _stream_reader(fh)(count)

class TieredRandom(StreamRandom):
    """random source which tries a list of byte sources in priority order.

    :arg sources:
        sequence of ``(name, callable)`` pairs; each callable takes a byte
        count and returns that many random bytes.

    each call to :meth:`getrandbytes` tries the sources in order, moving
    to the next tier if a source raises :exc:`OSError`,
    :exc:`NotImplementedError` or :exc:`EOFError`, or returns a short read.
    tiers are tried once per call; if all of them fail,
    :exc:`~modcrypt.exc.MissingBackendError` is raised.
    """
    def __init__(self, sources):
        self.sources = list(sources)
        if not self.sources:
            raise ValueError("at least one random source required")
        super(TieredRandom, self).__init__()

    def getrandbytes(self, count):
        if count < 0:
            raise ValueError("count must be >= 0")
        for name, source in self.sources:
            try:
                result = source(count)
            except (OSError, NotImplementedError, EOFError) as err:
                log.warning("random source %r unavailable: %s", name, err)
                continue
            if len(result) == count:
                return result
            log.warning("random source %r returned %d bytes, expected %d",
                        name, len(result), count)
        raise MissingBackendError("no strong random source available "
                                  "(tried: %s)" % ", ".join(name for name, _ in self.sources))

    def __repr__(self):
        return "<TieredRandom %s>" % ", ".join(name for name, _ in self.sources)

#=================================================================================
#weak source
#=================================================================================
class WeakRandom(StreamRandom):
    """non-cryptographic random source seeded from current time & process id.

    the output of this source is predictable to anyone who can guess
    when and where it was seeded. it is never selected automatically;
    it must be enabled explicitly via ``srandom.set_rng("weak")``,
    and issues a :exc:`~modcrypt.exc.ModcryptSecurityWarning` when created.

    the internal state is shared by all threads using the instance,
    and is guarded by a lock so concurrent calls don't interleave updates.
    """
    def __init__(self, seed=None):
        warn("using weak time/pid seeded random source; generated salts "
             "will be predictable", ModcryptSecurityWarning)
        if seed is None:
            seed = "%r %r %r" % (time.time(), os.getpid(), id(self))
        self._lock = threading.Lock()
        self._state = md5(str(seed).encode("utf-8")).hexdigest()
        super(WeakRandom, self).__init__()

    def getrandbytes(self, count):
        out = []
        with self._lock:
            for _ in range(0, count, 16):
                text = "%.6f%s" % (time.time(), self._state)
                self._state = md5(text.encode("ascii")).hexdigest()
                out.append(md5(self._state.encode("ascii")).digest())
        return b"".join(out)[:count]

#=================================================================================
#setup proxy for chosen random source
#=================================================================================
class RandomProxy(object):
    "proxy object for RNG instances"
    def __init__(self, name, rng=None):
        self.__name = name
        self.__rng = None
        if rng:
            self.set_rng(rng)

    def __getattr__(self, attr):
        rng = self.__rng
        if rng is None:
            raise AttributeError("attribute not found (no RNG specified for proxy %r)" % (self.__name,))
        return getattr(rng, attr)

    def get_rng(self):
        "return rng instance currently used by this proxy object"
        return self.__rng

    def set_rng(self, source):
        """change rng source which this proxy object uses

        :arg source:
            replacement RNG. can be one of the following:

            * class or instance of :class:`random.Random` or a subclass.
            * callable which takes in byte count and returns random bytes (eg :func:`os.urandom`)
            * a stream which contains an unending source of random bytes (eg: ``open("/dev/urandom", "rb")`` on unix)
            * predefined constant "system", which uses :func:`os.urandom` only.
            * predefined constant "device", which reads the system entropy device only.
            * predefined constant "weak", which uses :class:`WeakRandom`.
            * predefined constant "default", which resets the proxy to the tiered source modcrypt uses by default.
        """
        if isinstance(source, str):
            if source == "system":
                source = SystemRandom
            elif source == "device":
                source = TieredRandom([("device", _read_device)])
            elif source == "weak":
                source = WeakRandom
            elif source == "default":
                source = get_default_rng()
            else:
                raise ValueError("unknown preset random source: %r" % (source,))
        if hasattr(source, "randrange"): #random class or instance
            if isinstance(source, type):
                source = source()
        elif hasattr(source, "read") or callable(source):
            source = StreamRandom(source)
        else:
            raise TypeError("unknown random source type: %r" % (source,))
        log.debug("random proxy %r now using %r", self.__name, source)
        self.__rng = source
        return source

    def __repr__(self):
        return "<RandomProxy %r target=%r>" % (self.__name, self.__rng)

def get_default_rng():
    "return default rng for modcrypt to use"
    return TieredRandom([
        ("urandom", os.urandom),
        ("device", _read_device),
    ])

#proxy for whichever RNG has been selected for modcrypt routines to use.
srandom = RandomProxy(name="strong random", rng="default")

#=================================================================================
#random number helpers
#=================================================================================
def getrandbytes(rng, count):
    """return string of exactly *count* random bytes, using specified rng"""
    if count < 0:
        raise ValueError("count must be >= 0")
    if not count:
        return b""

    #just in case rng provides this (eg our SystemRandom subclass above)...
    meth = getattr(rng, "getrandbytes", None)
    if meth:
        result = meth(count)
    else:
        value = rng.getrandbits(count<<3)
        result = value.to_bytes(count, "little")
    if len(result) != count:
        raise MissingBackendError("random source returned %d bytes, expected %d" %
                                  (len(result), count))
    return result

def getrandstr(rng, alphabet, count):
    """return string of *size* number of chars, whose elements are drawn from specified alphabet"""
    #check alphabet & count
    if count < 0:
        raise ValueError("count must be >= 0")
    letters = len(alphabet)
    if letters == 0:
        raise ValueError("alphabet must not be empty")
    if letters == 1:
        return alphabet * count

    #get random value, and write out to buffer
    value = rng.randrange(0, letters**count)
    buf = []
    for _ in range(count):
        buf.append(alphabet[value % letters])
        value //= letters
    assert value == 0
    return "".join(buf)

#=================================================================================
#eof
#=================================================================================
