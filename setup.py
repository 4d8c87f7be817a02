from setuptools import setup, find_packages

setup(
    name='depotfetch',
    version='0.1.0',
    description='Fetch Steam depot bundles from redundant GitHub mirrors',
    package_dir={'': 'src'},
    packages=find_packages('src'),
    python_requires='>=3.10',
    install_requires=[
        'requests',
        'pick',
        'PyYAML',
        'platformdirs',
        'rich',
    ],
    extras_require={
        'test': [
            'pytest',
            'pytest-mock',
        ],
    },
    entry_points={
        'console_scripts': [
            'depotfetch=depotfetch.cli:main',
        ],
    },
)
