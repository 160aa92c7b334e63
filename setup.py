from setuptools import setup, find_packages

setup(
    name='siwe',
    version='1.0.0',
    author='Spruce Systems, Inc.',
    project_urls={
        'Homepage': 'https://login.xyz',
        'Source': 'https://github.com/spruceid/siwe-py',
        'Discord': 'https://discord.gg/Sf9tSFzrnt',
        'EIP-4361': 'https://github.com/ethereum/EIPs/blob/master/EIPS/eip-4361.md'
    },
    packages=find_packages(exclude=['tests', 'tests.*']),
    include_package_data=True,
    license='MIT',
    description='A Python implementation of Sign-In with Ethereum (EIP-4361).',
    long_description=open('README.md').read(),
    long_description_content_type='text/markdown',
    python_requires='>=3.11',
    install_requires=[
        'eth-account>=0.10',
        'eth-typing>=3.0',
        'hexbytes>=0.3',
        'pydantic>=2.0',
        'typing-extensions>=4.0',
        'web3>=6.0',
    ],
    extras_require={
        'test': [
            'pytest>=7.0',
            'pytest-asyncio>=0.21',
            'eth-utils>=2.0',
            'python-dateutil>=2.8',
        ],
    },
)
