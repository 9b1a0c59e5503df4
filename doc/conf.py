"""Sphinx configuration."""
import datetime
from importlib.metadata import version as distribution_version

# Sphinx configuration below.
project = "toyqc-grid-simulator"
version = distribution_version(project)
release = version
copyright = "{}, Amazon.com".format(datetime.datetime.now().year)

extensions = [
    "sphinxcontrib.apidoc",
    "sphinx.ext.autodoc",
    "sphinx.ext.viewcode",
    "sphinx.ext.napoleon",
    "sphinx.ext.todo",
    "sphinx.ext.coverage",
]

source_suffix = ".rst"
master_doc = "index"

autoclass_content = "both"
autodoc_member_order = "bysource"
default_role = "py:obj"

html_theme = "sphinx_rtd_theme"
htmlhelp_basename = "{}doc".format(project)

napoleon_use_rtype = False

apidoc_module_dir = "../src/toyqc"
apidoc_output_dir = "_apidoc"
apidoc_excluded_paths = ["../test"]
apidoc_separate_modules = True
apidoc_module_first = True
apidoc_extra_args = ["-f", "--implicit-namespaces", "-H", "API Reference"]


# -- Options for MathJax output -------------------------------------------

mathjax_config = {
    "TeX": {
        "Macros": {
            "bra": [r"{\langle #1 |}", 1],
            "ket": [r"{| #1 \rangle}", 1],
            "density": [r"{\rho_{#1 #2}}", 2],
        }
    }
}
