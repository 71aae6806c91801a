from setuptools import setup, find_namespace_packages

setup(
    name='atmfjstc-rifx',
    version='1.0.0',

    author_email='atmfjstc@protonmail.com',

    package_dir={'': 'src'},
    packages=find_namespace_packages(where='src', include=['atmfjstc.*']),

    install_requires=[
        'termcolor>=1.1',
        'colorama>=0.4.6, <2',
    ],

    extras_require={
        'test': [
            'pytest>=7',
        ],
    },

    entry_points={
        'console_scripts': [
            'rifx-dump=atmfjstc.lib.rifx.dump:main',
        ],
    },

    zip_safe=True,

    description="Parser for RIFX (big-endian RIFF) chunk container files",

    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Environment :: Console",
        "Typing :: Typed",
    ],
    python_requires='>=3.7',
)
