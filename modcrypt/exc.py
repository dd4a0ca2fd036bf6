"""modcrypt.exc -- exceptions & warnings raised by modcrypt"""
#==========================================================================
# exceptions
#==========================================================================
class MissingBackendError(RuntimeError):
    """Error raised if multi-backend handler has no available backends;
    or if specifically requested backend is not available.

    :exc:`!MissingBackendError` derives
    from :exc:`RuntimeError`, since this usually indicates
    lack of an external library or OS feature.

    This is raised by handlers which derive
    from :class:`~modcrypt.utils.handlers.HasManyBackends`,
    and by :mod:`modcrypt.rng` when no random source can be loaded.
    """

class InvalidOptionError(ValueError):
    """Error raised by ``genconfig()`` when an explicitly provided option
    violates the constraints of the hash scheme.

    .. attribute:: option

        name of the offending option (e.g. ``"rounds"``).

    .. attribute:: scheme

        name of the hash scheme which rejected the option.

    Since the error always names the field, applications may
    report it back to whoever wrote the configuration.
    Options are never silently clamped into range.
    """
    def __init__(self, handler, option, reason):
        self.scheme = _get_name(handler)
        self.option = option
        ValueError.__init__(self, "%s: invalid %r option (%s)" %
                            (self.scheme, option, reason))

class MalformedHashError(ValueError):
    """Error raised internally when a hash or configuration string
    is recognized, but one of its fields is malformed.

    Handlers convert this into the ``*0`` / ``*1`` sentinel
    before it reaches ``genhash()`` / ``hash()`` callers,
    and ``verify()`` reports it as a mismatch.
    """
    def __init__(self, handler=None, reason=None):
        self.scheme = _get_name(handler)
        text = "malformed %s hash" % (self.scheme,)
        if reason:
            text = "%s (%s)" % (text, reason)
        ValueError.__init__(self, text)

#==========================================================================
# warnings
#==========================================================================
class ModcryptWarning(UserWarning):
    """base class for modcrypt's user warnings"""

class ModcryptConfigWarning(ModcryptWarning):
    """Warning issued when non-fatal issue is found in the configuration
    of a :class:`~modcrypt.context.Context` instance,
    e.g. an unknown key inside an INI section.
    """

class ModcryptSecurityWarning(ModcryptWarning):
    """Special warning issued when modcrypt encounters something
    that might affect security.

    The main reason this is issued is when the weak time/pid seeded
    random source from :mod:`modcrypt.rng` has been explicitly enabled.
    """

#==========================================================================
# error constructors
#
# note: these functions are used by the hashes in modcrypt to raise common
# error messages, so the wording stays consistent across handlers.
#==========================================================================

def _get_name(handler):
    return handler.name if handler else "<unnamed>"

def type_name(value):
    "return pretty-printed string containing name of value's type"
    cls = value.__class__
    if cls.__module__ and cls.__module__ not in ["builtins"]:
        return "%s.%s" % (cls.__module__, cls.__name__)
    elif value is None:
        return 'None'
    else:
        return cls.__name__

def ExpectedTypeError(value, expected, param):
    "error message when param was supposed to be one type, but found another"
    # NOTE: value is never displayed, since it may sometimes be a password.
    name = type_name(value)
    return TypeError("%s must be %s, not %s" % (param, expected, name))

def ExpectedStringError(value, param):
    "error message when param was supposed to be unicode or bytes"
    return ExpectedTypeError(value, "unicode or bytes", param)

#----------------------------------------------------------------
# hash parsing errors
#----------------------------------------------------------------
def InvalidHashError(handler=None):
    "error raised if unrecognized hash provided to handler"
    return MalformedHashError(handler, "not a %s hash" % (_get_name(handler),))

def ZeroPaddedRoundsError(handler=None, param="rounds"):
    "error raised if hash was recognized but contained zero-padded rounds field"
    return MalformedHashError(handler, "zero-padded %s field" % (param,))

def ChecksumSizeError(handler, raw=False):
    "error raised if hash was recognized, but checksum was wrong size"
    checksum_size = handler.checksum_size
    unit = "bytes" if raw else "chars"
    reason = "checksum must be exactly %d %s" % (checksum_size, unit)
    return MalformedHashError(handler, reason)

#==========================================================================
# eof
#==========================================================================
