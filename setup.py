from setuptools import setup, find_packages

setup(
    name='opalpack',
    version='0.1.0',
    py_modules=['opalpack', 'transpiler'],
    packages=find_packages(exclude=['tests', 'tests.*']),
    package_data={
        'opal_loader.opal': ['opal.js'],
    },
    python_requires='>=3.8',
    install_requires=[
        'lark',
        'pydantic>=2.0',
    ],
    extras_require={
        'dev': [
            'pytest',
        ],
    },
    entry_points={
        'console_scripts': [
            'opalpack = opalpack:main',
        ],
    },
)
