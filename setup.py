"""modcrypt setup script"""
#=========================================================
#init script env - ensure cwd = root of source dir
#=========================================================
import os
root_dir = os.path.abspath(os.path.join(__file__,".."))
os.chdir(root_dir)

#=========================================================
#imports
#=========================================================
import re

from setuptools import setup

#=========================================================
#version string
#=========================================================
with open(os.path.join(root_dir, "modcrypt", "__init__.py")) as vh:
    VERSION = re.search(r'^__version__\s*=\s*"(.*?)"\s*$', vh.read(), re.M).group(1)

#=========================================================
#static text
#=========================================================
SUMMARY = "modular crypt format password hashing, with password strength estimation"

DESCRIPTION = """\
modcrypt implements the password hashes found in the modular crypt format
(DES-Crypt, BSDi-Crypt, MD5-Crypt, BCrypt, SHA1-Crypt, SHA256-Crypt,
SHA512-Crypt, PBKDF2, and the PHPass portable hash) behind a single
``genconfig`` / ``genhash`` / ``verify`` interface; a ``Context``
object for managing and migrating hashes across multiple configurations;
and simple NIST and Wolfram style password strength estimators.
"""

KEYWORDS = "password secret hash security crypt md5-crypt sha256-crypt sha512-crypt bcrypt pbkdf2 phpass strength"

#=========================================================
#config setup
#=========================================================
config = dict(
    #package info
    packages = [
        "modcrypt",
            "modcrypt.handlers",
            "modcrypt.tests",
            "modcrypt.utils",
        ],
    zip_safe=True,
    python_requires = ">=3.8",
    install_requires = [
        "bcrypt",
        "legacycrypt",
        "passlib",
    ],
    extras_require = {
        "test": ["pytest"],
    },

    #metadata
    name = "modcrypt",
    version = VERSION,
    license = "BSD",

    description = SUMMARY,
    long_description = DESCRIPTION,
    keywords = KEYWORDS,
    classifiers = [
        "Development Status :: 5 - Production/Stable",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: BSD License",
        "Natural Language :: English",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Topic :: Security :: Cryptography",
        "Topic :: Software Development :: Libraries",
    ],
)

#=========================================================
#build
#=========================================================
setup(**config)

#=========================================================
#EOF
#=========================================================
