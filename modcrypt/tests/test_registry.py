"""tests for modcrypt.registry"""
#=========================================================
#imports
#=========================================================
#core
import logging; log = logging.getLogger(__name__)
import warnings
#site
#pkg
from modcrypt import registry
from modcrypt.exc import ModcryptWarning
from modcrypt.registry import register_crypt_handler, register_crypt_handler_path, \
    get_crypt_handler, list_crypt_handlers, has_crypt_handler
from modcrypt.utils.handlers import GenericHandler
from modcrypt.tests.utils import TestCase
#module

#=========================================================
#test registry
#=========================================================
class dummy_0(GenericHandler):
    name = "dummy_0"
    setting_kwds = ()

class alt_dummy_0(GenericHandler):
    name = "dummy_0"
    setting_kwds = ()

dummy_x = 1

class RegistryTest(TestCase):
    descriptionPrefix = "modcrypt registry"

    def tearDown(self):
        for name in ("dummy_0", "dummy_1", "dummy_x", "alt_dummy_0"):
            registry._unload_handler_name(name)
        super(RegistryTest, self).tearDown()

    def test_builtin_handlers(self):
        "test builtin handlers can all be loaded"
        names = list_crypt_handlers()
        for name in ["bcrypt", "bsdi_crypt", "des_crypt", "md5_crypt", "pbkdf2",
                     "phpass", "sha1_crypt", "sha256_crypt", "sha512_crypt"]:
            self.assertIn(name, names)
            self.assertTrue(has_crypt_handler(name))
            handler = get_crypt_handler(name)
            self.assertEqual(handler.name, name)
            self.assertTrue(has_crypt_handler(name, loaded_only=True))
            self.assertIn(name, list_crypt_handlers(loaded_only=True))

    def test_register_crypt_handler_path(self):
        "test register_crypt_handler_path()"

        #NOTE: this messes w/ internals of registry, shouldn't be used publically.
        paths = registry._handler_locations

        #check namespace is clear
        self.assertTrue('dummy_0' not in paths)
        self.assertFalse(has_crypt_handler('dummy_0'))

        #try lazy load
        register_crypt_handler_path('dummy_0', 'modcrypt.tests.test_registry')
        self.assertTrue('dummy_0' in list_crypt_handlers())
        self.assertTrue('dummy_0' not in list_crypt_handlers(loaded_only=True))
        self.assertIs(get_crypt_handler('dummy_0'), dummy_0)
        self.assertTrue('dummy_0' in list_crypt_handlers(loaded_only=True))
        registry._unload_handler_name('dummy_0')

        #try lazy load w/ alt
        register_crypt_handler_path('dummy_0', 'modcrypt.tests.test_registry:alt_dummy_0')
        self.assertIs(get_crypt_handler('dummy_0'), alt_dummy_0)
        registry._unload_handler_name('dummy_0')

        #check lazy load w/ wrong type fails
        register_crypt_handler_path('dummy_x', 'modcrypt.tests.test_registry')
        self.assertRaises(TypeError, get_crypt_handler, 'dummy_x')

        #check lazy load w/ wrong name fails
        register_crypt_handler_path('alt_dummy_0', 'modcrypt.tests.test_registry')
        self.assertRaises(ValueError, get_crypt_handler, "alt_dummy_0")

    def test_register_crypt_handler(self):
        "test register_crypt_handler()"

        self.assertRaises(TypeError, register_crypt_handler, {})

        self.assertRaises(ValueError, register_crypt_handler, GenericHandler)
        for name in ["AB_CD", "ab-cd", "ab", "1abc", "ab__cd", "context", "default"]:
            handler = type('x', (GenericHandler,), dict(name=name))
            self.assertRaises(ValueError, register_crypt_handler, handler)

        class dummy_1(GenericHandler):
            name = "dummy_1"

        class dummy_1b(GenericHandler):
            name = "dummy_1"

        self.assertTrue('dummy_1' not in list_crypt_handlers())

        register_crypt_handler(dummy_1)
        register_crypt_handler(dummy_1)
        self.assertIs(get_crypt_handler("dummy_1"), dummy_1)

        self.assertRaises(KeyError, register_crypt_handler, dummy_1b)
        self.assertIs(get_crypt_handler("dummy_1"), dummy_1)

        register_crypt_handler(dummy_1b, force=True)
        self.assertIs(get_crypt_handler("dummy_1"), dummy_1b)

        self.assertTrue('dummy_1' in list_crypt_handlers())

    def test_get_crypt_handler(self):
        "test get_crypt_handler()"

        class dummy_1(GenericHandler):
            name = "dummy_1"

        self.assertRaises(KeyError, get_crypt_handler, "dummy_1")
        self.assertIs(get_crypt_handler("dummy_1", None), None)

        register_crypt_handler(dummy_1)
        self.assertIs(get_crypt_handler("dummy_1"), dummy_1)

        with warnings.catch_warnings(record=True) as wlog:
            warnings.simplefilter("always")
            self.assertIs(get_crypt_handler("DUMMY-1"), dummy_1)
        self.assertWarningList(wlog, [ModcryptWarning])

#=========================================================
#EOF
#=========================================================
