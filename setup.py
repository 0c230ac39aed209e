"""Packaging setup with an optional Cython build."""

import os
import sys
from pathlib import Path

from setuptools import Extension, find_packages, setup


# Accept several truthy values for CYTHONIZE (so "True", True, "1", "true" all work)
CYTHONIZE_RAW = os.getenv("CYTHONIZE", "0")
CYTHONIZE = str(CYTHONIZE_RAW).strip().lower() in ("1", "true", "yes", "on")

if CYTHONIZE:
    from Cython.Build import cythonize

dist_name = "DetectFlow"
package_dir = "detectflow"
version = Path("VERSION.txt").read_text().strip()

install_requires = [
    "numpy>=1.24",
    "loguru>=0.7",
    "opencv-python>=4.8",
    "onnxruntime>=1.16",
]

extras_require = {
    "test": ["pytest>=7.4"],
}


def list_py_files(package_dir: str | Path) -> list[str]:
    """Return Python source files under the package directory."""
    root = Path(package_dir)
    return [str(path) for path in root.rglob("*.py")]


packages = find_packages(include=[package_dir, f"{package_dir}.*"])

setup_kwargs = {
    "name": dist_name,
    "version": version,
    "description": "Real-time decoding of YOLO detection tensors into stable boxes",
    "python_requires": ">=3.10",
    "install_requires": install_requires,
    "extras_require": extras_require,
    "entry_points": {
        "console_scripts": ["detectflow = detectflow.yolo.cli:main"],
    },
    "zip_safe": False,
}

if CYTHONIZE:
    if sys.platform == "win32":
        extra_compile_args = ["/O2", "/MD"]
        extra_link_args = ["/OPT:REF", "/OPT:ICF"]
    else:
        extra_compile_args = ["-O3", "-fvisibility=hidden"]
        extra_link_args = []

    extensions = [
        Extension(
            py_file.replace(os.path.sep, ".")[:-3],
            [py_file],
            extra_compile_args=extra_compile_args,
            extra_link_args=extra_link_args,
        )
        for py_file in list_py_files(package_dir)
        if not py_file.endswith("__init__.py")
    ]
    setup_kwargs.update(
        {
            "ext_modules": cythonize(
                extensions,
                compiler_directives={
                    "language_level": "3",
                    "binding": False,
                    "annotation_typing": False,
                },
            ),
            "packages": packages,
            "package_data": {"": ["*.c", "*.so", "*.pyd"]},
        }
    )
else:
    setup_kwargs.update({"packages": packages, "include_package_data": True})

setup(**setup_kwargs)
