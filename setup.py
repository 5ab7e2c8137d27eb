from setuptools import setup, find_packages

setup(
    name="depthfusion",
    version="0.1.0",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    install_requires=[
        "numpy",
        "scipy",
    ],
    extras_require={
        "open3d": [
            "open3d",
        ],
        "test": [
            "pytest",
        ],
        "dev": [
            "pytest",
            "black",
            "flake8",
        ],
    },
    python_requires=">=3.9",
    description="Multi-frame depth capture fusion into oriented point clouds and surface meshes",
    keywords="point cloud, normals, outlier removal, poisson, surface reconstruction, 3d",
)
