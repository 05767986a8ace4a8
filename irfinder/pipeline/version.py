__version__ = "1.3.1"
__git_revision__ = ""
