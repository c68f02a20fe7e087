from setuptools import find_namespace_packages, setup
import toml

# Read the configuration from pyproject.toml
with open("pyproject.toml", "r") as pyproject_file:
    config = toml.load(pyproject_file)

project = config["project"]

# Setup the package
setup(
    name=project["name"],
    version=project["version"],
    description=project["description"],
    long_description=open(project["readme"]).read(),
    long_description_content_type="text/markdown",
    author=project["authors"][0]["name"],
    author_email=project["authors"][0]["email"],
    url=project["urls"]["homepage"],
    classifiers=project["classifiers"],
    python_requires=project["requires-python"],
    install_requires=project["dependencies"],
    extras_require=project["optional-dependencies"],
    entry_points={
        "console_scripts": [f"{name} = {target}" for name, target in project["scripts"].items()],
    },
    packages=find_namespace_packages(include=["dissect.amcache", "dissect.amcache.*"]),
    include_package_data=True,
)
