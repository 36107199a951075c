from setuptools import setup, find_packages

setup(
    name="shuttlebar",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    install_requires=[
        "click",
        "toml",
        "rumps; sys_platform == 'darwin'",
        "pyobjc-framework-Cocoa; sys_platform == 'darwin'",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "shuttlebar=shuttlebar.cli:cli",
            "shuttlebar-app=shuttlebar.app:main",
        ],
    },
    python_requires=">=3.9",
    author="ShuttleBar Contributors",
    description="sshuttle VPN controller for the macOS menu bar",
    long_description="A macOS status bar app that starts sshuttle, restarts it when the tunnel drops and notifies you about what happened.",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: MacOS X",
        "Intended Audience :: End Users/Desktop",
        "License :: OSI Approved :: MIT License",
        "Operating System :: MacOS :: MacOS X",
        "Programming Language :: Python :: 3",
        "Topic :: System :: Networking",
    ],
)
