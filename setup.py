from setuptools import setup, find_packages

setup(
    name='setup-kustomize',
    version='0.1.0',
    description='Install a kustomize release into a tool cache and add it to PATH',
    python_requires='>=3.10',
    package_dir={'': 'src'},
    packages=find_packages(where='src'),
    install_requires=[
        'requests',
        'urllib3',
        'PyYAML',
        'platformdirs',
        'rich',
        'semantic_version',
    ],
    extras_require={
        'test': [
            'pytest',
            'pytest-mock',
        ],
    },
    entry_points={
        'console_scripts': [
            'setup-kustomize=setup_kustomize.cli:main',
        ],
    },
)
