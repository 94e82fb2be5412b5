"""
Setup script for Yarn - Serverless, end-to-end encrypted threads.

This package provides:
- Conversation snapshots carried entirely in a URL fragment (no servers)
- AES-128-GCM capsules under single-use keys
- gzip / deflate / deflate-raw compression of the snapshot
- Key-derived identity proofs for log in without passwords
- A command line tool for share links and snapshot files
"""

from setuptools import setup, find_packages
import os

this_directory = os.path.abspath(os.path.dirname(__file__))
with open(os.path.join(this_directory, 'README.md'), encoding='utf-8') as f:
    long_description = f.read()

setup(
    name='yarn-thread',
    version='1.0.0',
    description='Serverless, end-to-end encrypted threads carried in a URL fragment',
    long_description=long_description,
    long_description_content_type='text/markdown',
    package_dir={'': 'src'},
    packages=find_packages(where='src'),
    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: Developers',
        'Topic :: Communications',
        'Topic :: Security :: Cryptography',
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
        'Operating System :: OS Independent',
        'Environment :: Console',
    ],
    python_requires='>=3.10',
    install_requires=[
        'cryptography>=42.0.4',
        'rich>=13.7.0',
        'aiofiles>=23.2.1',
        'tomli>=2.0.1; python_version<"3.11"',
    ],
    extras_require={
        'test': [
            'pytest>=7.4.0',
            'pytest-asyncio>=0.23.0',
        ],
    },
    entry_points={
        'console_scripts': [
            'yarn-capsule=yarnthread.main:main',
        ],
    },
)
