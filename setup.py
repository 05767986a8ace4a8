#!/usr/bin/env python

"""Setup file and install script for the IRFinder run orchestrator"""

import os
import subprocess

import setuptools

VERSION = '1.3.1'

# add version number and git commit hash of the current revision to version.py
try:
    git_run = subprocess.run(['git', 'rev-parse', '--short', 'HEAD'], stdout=subprocess.PIPE,
                             stderr=subprocess.DEVNULL)
    git_run.check_returncode()
except (subprocess.SubprocessError, OSError):
    commit_hash = ''
else:
    commit_hash = git_run.stdout.strip().decode()

here = os.path.dirname(os.path.abspath(__file__))
with open(os.path.join(here, 'irfinder', 'pipeline', 'version.py'), 'w') as version_file:
    version_file.writelines([f'__version__ = "{VERSION}"\n',
                             f'__git_revision__ = "{commit_hash}"\n'])

# the aligner, trimmer, analysis filter, sorter and reference builder are
# external binaries installed alongside, see config/irfinder_system-example.yaml
setuptools.setup(
    name='irfinder',
    version=VERSION,
    description='Orchestrate intron retention analysis of RNA-seq data',
    packages=setuptools.find_packages(exclude=['tests', 'tests.*']),
    scripts=['scripts/irfinder.py'],
    python_requires='>=3.8',
    install_requires=[
        'Logbook',
        'PyYAML',
        'psutil',
        'toolz',
    ],
    extras_require={
        'test': ['pytest', 'mock', 'pytest-mock'],
    },
)
