from setuptools import setup, find_packages

setup(
    name="stegascan",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "pillow>=10.0.0",
        "numpy>=1.24.0",
        "scipy>=1.10.0",
        "soundfile>=0.12.1",
        "opencv-python-headless>=4.8.0",
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "stegascan=stegascan.main:main",
        ],
    },
    python_requires=">=3.9",
)
