from setuptools import setup, find_packages

setup(
    name='team_hierarchy',
    version='1.0.0',
    package_dir={'': 'src'},
    packages=find_packages(where='src'),
    package_data={'team_hierarchy.database': ['schema.sql']},
    python_requires='>=3.10',
    install_requires=[
        'pyyaml>=6.0',
        'python-dotenv>=1.0.0',
        'tqdm>=4.66.0',
    ],
    extras_require={
        'dev': [
            'pytest>=7.4.0',
            'pytest-cov>=4.1.0',
            'black>=23.0.0',
            'flake8>=6.0.0',
            'mypy>=1.5.0',
        ]
    },
    entry_points={
        'console_scripts': [
            'team-hierarchy=team_hierarchy.cli.main:main',
        ],
    },
)
