"""pairsys: one- and two-atom Hamiltonians in Python
====================================================

pairsys is an open-source Python library for constructing and diagonalizing Hamiltonians of one or two
interacting atoms in a truncated basis of quantum states. It builds and indexes the basis, assembles sparse
Hermitian matrices from unperturbed energies and selection-rule governed couplings, restricts and
symmetry-reduces the basis, and computes eigen-spectra across parameter sweeps. Internally, numerics within
pairsys is carried out with the help of Numpy and Scipy; an interface to QuTiP is provided.
"""
#
# This file is part of pairsys.
#
#    Copyright (c) 2019, Jens Koch and Peter Groszkowski
#    All rights reserved.
#
#    This source code is licensed under the BSD-style license found in the
#    LICENSE file in the root directory of this source tree.
############################################################################

import os
import sys
import setuptools


DOCLINES = __doc__.split('\n')

CLASSIFIERS = """\
Development Status :: 4 - Beta
Intended Audience :: Science/Research
License :: OSI Approved :: BSD License
Programming Language :: Python
Programming Language :: Python :: 3
Topic :: Scientific/Engineering
Topic :: Scientific/Engineering :: Physics
Operating System :: MacOS
Operating System :: POSIX
Operating System :: Unix
Operating System :: Microsoft :: Windows
"""


EXTRA_KWARGS = {}

# version information about pairsys goes here
MAJOR = 0
MINOR = 1
MICRO = 0
ISRELEASED = True

VERSION = '%d.%d.%d' % (MAJOR, MINOR, MICRO)

CURRENT_DIR = os.path.dirname(os.path.abspath(__file__))
with open(os.path.join(CURRENT_DIR, "requirements.txt")) as requirements:
    INSTALL_REQUIRES = requirements.read().splitlines()


TESTS_REQUIRE = ['h5py (>=2.10)',
                 'pathos',
                 'dill',
                 'pytest']

EXTRAS_REQUIRE = {'h5-support': ['h5py (>=2.10)'],
                  'pathos': ['pathos', 'dill'],
                  'tests': TESTS_REQUIRE}

PACKAGES = ['pairsys',
            'pairsys/core',
            'pairsys/tests',
            'pairsys/utils',
            'pairsys/io_utils']

PYTHON_VERSION = '>=3.7'


NAME = "pairsys"
AUTHOR = "Jens Koch, Peter Groszkowski"
AUTHOR_EMAIL = "jens-koch@northwestern.edu, piotrekg@gmail.com"
LICENSE = "BSD"
DESCRIPTION = DOCLINES[0]
LONG_DESCRIPTION = "\n".join(DOCLINES[2:])
KEYWORDS = "rydberg atoms, pair potentials, hamiltonian diagonalization"
URL = "https://github.com/pairsys/pairsys"
CLASSIFIERS = [_f for _f in CLASSIFIERS.split('\n') if _f]
PLATFORMS = ["Linux", "Mac OSX", "Unix", "Windows"]


def git_short_hash():
    try:
        git_str = "+" + os.popen('git log -1 --format="%h"').read().strip()
    except OSError:
        git_str = ""
    else:
        if git_str == '+':   # fixes setuptools PEP issues with versioning
            git_str = ''
    return git_str


FULLVERSION = VERSION
if not ISRELEASED:
    FULLVERSION += '.dev'+str(MICRO)+git_short_hash()


def write_version_py(filename='pairsys/version.py'):
    cnt = """\
# THIS FILE IS GENERATED FROM pairsys SETUP.PY
short_version = '%(version)s'
version = '%(fullversion)s'
release = %(isrelease)s
"""
    with open(filename, 'w') as versionfile:
        versionfile.write(cnt % {'version': VERSION, 'fullversion': FULLVERSION, 'isrelease': str(ISRELEASED)})


local_path = os.path.dirname(os.path.abspath(sys.argv[0]))
os.chdir(local_path)
sys.path.insert(0, local_path)
sys.path.insert(0, os.path.join(local_path, 'pairsys'))  # to retrieve _version

# always rewrite _version
if os.path.exists('pairsys/version.py'):
    os.remove('pairsys/version.py')
write_version_py()

setuptools.setup(name=NAME,
                 version=FULLVERSION,
                 packages=PACKAGES,
                 author=AUTHOR,
                 author_email=AUTHOR_EMAIL,
                 license=LICENSE,
                 description=DESCRIPTION,
                 long_description=LONG_DESCRIPTION,
                 keywords=KEYWORDS,
                 url=URL,
                 classifiers=CLASSIFIERS,
                 platforms=PLATFORMS,
                 install_requires=INSTALL_REQUIRES,
                 extras_require=EXTRAS_REQUIRE,
                 tests_require=TESTS_REQUIRE,
                 zip_safe=False,
                 include_package_data=True,
                 python_requires=PYTHON_VERSION,
                 **EXTRA_KWARGS
                 )
