"""modcrypt.registry - name -> handler lookup table, with lazy loading"""
#=========================================================
#imports
#=========================================================
#core
from importlib import import_module
import re
import logging; log = logging.getLogger(__name__)
from warnings import warn
#site
#libs
from modcrypt.exc import ModcryptWarning
from modcrypt.utils import is_crypt_handler
#pkg
#local
__all__ = [
    "register_crypt_handler_path",
    "register_crypt_handler",
    "get_crypt_handler",
    "list_crypt_handlers",
    "has_crypt_handler",
]

#==========================================================
#registry state
#==========================================================

#: handlers which have been imported & validated, keyed by name
_handlers = {}

#: where to find handlers which haven't been imported yet.
#: maps name -> (module name, attribute name)
_handler_locations = dict(
    (name, ("modcrypt.handlers." + module, name))
    for module, names in [
        ("bcrypt",      ["bcrypt"]),
        ("des_crypt",   ["des_crypt", "bsdi_crypt"]),
        ("md5_crypt",   ["md5_crypt"]),
        ("pbkdf2",      ["pbkdf2"]),
        ("phpass",      ["phpass"]),
        ("sha1_crypt",  ["sha1_crypt"]),
        ("sha2_crypt",  ["sha256_crypt", "sha512_crypt"]),
    ]
    for name in names
)

#: handler names: lower-case identifier, at least 3 chars, no double underscores
_name_re = re.compile(r"^(?!.*__)[a-z][a-z0-9_]{2,}$")

#: names reserved for Context configuration keys
_reserved_names = frozenset(["all", "context", "default", "none", "schemes"])

_UNSET = object()

#==========================================================
#helpers
#==========================================================
def _check_name(name):
    "raise ValueError if name can't be used as a registry key"
    if not name:
        raise ValueError("handler has no name: %r" % (name,))
    if not _name_re.match(name):
        raise ValueError("invalid handler name %r: must be lower-case, "
                         "start with a letter, be 3+ chars long, "
                         "and not contain '__'" % (name,))
    if name in _reserved_names:
        raise ValueError("reserved handler name: %r" % (name,))

def _load_handler(name):
    "import handler from its registered location; returns None if unknown"
    location = _handler_locations.get(name)
    if not location:
        return None
    modname, attr = location
    # import errors are left to propagate, they indicate a bad location
    handler = getattr(import_module(modname), attr)
    register_crypt_handler(handler, name=name)
    return handler

#==========================================================
#public api
#==========================================================
def register_crypt_handler_path(name, path):
    """tell the registry where to import a handler from, without importing it yet.

    :arg name: name the handler will be looked up by.
    :arg path:
        module path, optionally followed by ``:attribute``.
        if no attribute is given, the module must contain
        an attribute with the same name as the handler.

    example::

        >>> from modcrypt.registry import register_crypt_handler_path
        >>> register_crypt_handler_path("myhash", "myapp.helpers:MyHash")
    """
    modname, sep, attr = path.partition(":")
    _handler_locations[name] = (modname, attr if sep else name)

def register_crypt_handler(handler, force=False, name=None):
    """add handler to the registry under ``handler.name``.

    :arg handler: object implementing the password hash api.
    :param force: replace any different handler already using the name.
    :param name: if set, ``handler.name`` must equal this value.

    :raises TypeError: object doesn't look like a handler.
    :raises ValueError: handler name is missing, malformed, or reserved.
    :raises KeyError: another handler owns the name, and *force* wasn't set.
    """
    if not is_crypt_handler(handler):
        raise TypeError("not a password hash handler: %r" % (handler,))

    if name and name != handler.name:
        raise ValueError("handler %r can't be registered as %r" % (handler.name, name))
    name = handler.name
    _check_name(name)

    current = _handlers.get(name)
    if current is handler:
        return
    if current is not None:
        if not force:
            raise KeyError("name %r already registered to %r "
                           "(pass force=True to replace it)" % (name, current))
        log.warning("replacing handler %r registered as %r", current, name)

    _handlers[name] = handler
    log.info("registered password hash handler %r: %r", name, handler)

def get_crypt_handler(name, default=_UNSET):
    """look up handler by name, importing it on first use.

    names using upper-case or hyphens are accepted,
    but issue a :exc:`~modcrypt.exc.ModcryptWarning`.

    :raises KeyError: no such handler, and no *default* was given.
    """
    handler = _handlers.get(name)
    if handler:
        return handler

    canonical = name.replace("-", "_").lower()
    if canonical != name:
        warn("handler names are lower-case and use underscores: "
             "%r => %r" % (name, canonical), ModcryptWarning)
        name = canonical
        handler = _handlers.get(name)
        if handler:
            return handler

    handler = _load_handler(name)
    if handler:
        return handler
    if default is _UNSET:
        raise KeyError("unknown password hash handler: %r" % (name,))
    return default

def list_crypt_handlers(loaded_only=False):
    "return sorted list of handler names (only imported ones if *loaded_only*)"
    if loaded_only:
        return sorted(_handlers)
    return sorted(set(_handlers).union(_handler_locations))

def has_crypt_handler(name, loaded_only=False):
    "check if handler name is registered (and imported, if *loaded_only*)"
    if name in _handlers:
        return True
    return not loaded_only and name in _handler_locations

def _unload_handler_name(name, locations=True):
    """remove handler from the registry; missing names are ignored.

    used by the unittests to reset registry state.
    with ``locations=False``, the lazy-load path is kept.
    """
    _handlers.pop(name, None)
    if locations:
        _handler_locations.pop(name, None)

#=========================================================
# eof
#=========================================================
