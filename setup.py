# -*- coding: utf-8 -*-
"""rotating-secret-provider a file backed JWT secret provider with hot rotation.

The current signing secret lives in an owner only json file together with a bounded
window of deprecated secrets. A TCP control channel rotates it without a restart and
hands the new secret back encrypted under the old one.

"""

import setuptools
import re
from io import open

VERSIONFILE="rotating_secret_provider/_version.py"
verstrline = open(VERSIONFILE, "rt").read()
VSRE = r"^__version__ = ['\"]([^'\"]*)['\"]"
mo = re.search(VSRE, verstrline, re.M)
if mo:
    verstr = mo.group(1)
else:
    raise RuntimeError("Unable to find version string in %s." % (VERSIONFILE,))

with open("README.md", "r", encoding='utf-8') as fh:
    long_description = fh.read()

setuptools.setup(
    name='rotating_secret_provider',
    version=verstr,
    description="A file backed JWT secret provider whose secret rotates over a TCP control channel, returning the new secret encrypted under the old one",
    long_description_content_type="text/markdown",
    long_description=long_description,
    packages=setuptools.find_packages(),
    include_package_data=True,
    license="MIT",
    python_requires=">=3.8",
    install_requires=[
        "cryptography>=41.0",
        "PyJWT>=2.8,<3.0",
        "pydantic>=2.0,<3.0",
        "pydantic-settings>=2.0,<3.0",
        "python-dateutil~=2.0",
        "pytz>=2022.0"
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "rotating-secrets=rotating_secret_provider.cli:main",
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: POSIX",
    ],

)
