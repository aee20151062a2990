# setup.py
from setuptools import setup, find_namespace_packages

setup(
    name="heapdump4py",
    version="0.1.0",
    description="Object graph heap estimator that writes size-annotated XML reports",
    package_dir={"": "src"},
    packages=find_namespace_packages(where="src", include=["heapdump4py", "heapdump4py.*"]),
    python_requires=">=3.10",
    install_requires=[],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        'console_scripts': [
            'heapdump4py=heapdump4py.main:main',
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
    ],
)
