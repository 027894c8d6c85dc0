import setuptools
import re

with open("README.md", "r") as fh:
    content = fh.read()
    arr = content.split("\n")
    long_description = "\n".join(arr[3:])


with open("retain_cycles/version.py", "r") as fp:
    try:
        version = re.findall(
            r"^version = \"([0-9\.]+)\"", fp.read(), re.M
        )[0]
    except IndexError:
        raise RuntimeError("Unable to determine version.")


install_requires=[
    'canoser>=0.8.2',
    'libra-core==0.8.4',
    "python-graph-core",
    "dataclasses-json",
]

tests_require = [
    'pytest',
]


setuptools.setup(
    name="retain-cycles",
    version=version,
    author="yuan xinyu",
    author_email="yuan_xin_yu@hotmail.com",
    description="Strong/weak reference counting and retain cycles, shown with a Person and an Apartment",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/yuan_xy/retain-cycles.git",
    packages=setuptools.find_packages(exclude=["test", "test.*"]),
    include_package_data=True,
    install_requires=install_requires,
    tests_require=tests_require,
    extras_require={"test": tests_require},
    entry_points={
        "console_scripts": ["retain-cycles=retain_cycles.main:main"],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires='>=3.7',
)
