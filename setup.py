from setuptools import setup, find_packages

setup(
    name             = 'incidentlog',
    version          = '1.0.0',
    description      = 'incidentlog — append-only incident log and static dashboard for headless server recovery',
    packages         = find_packages(exclude=['tests*']),
    install_requires = open('requirements.txt').read().splitlines(),
    extras_require   = {
        'test': ['pytest>=7.0', 'httpx>=0.24'],
    },
    entry_points     = {
        'console_scripts': [
            'incidentlog-record    = incidentlog.cli:run_record',
            'incidentlog-dashboard = incidentlog.cli:run_dashboard',
            'incidentlog-api       = incidentlog.api:main',
        ],
    },
    python_requires  = '>=3.10',
    classifiers      = [
        'Programming Language :: Python :: 3',
        'License :: OSI Approved :: MIT License',
        'Operating System :: POSIX :: Linux',
    ],
)
