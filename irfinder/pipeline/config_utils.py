"""Loads the optional system configuration and locates external programs.

The configuration is a YAML file with program locations and a few run knobs:

    libexec: /opt/irfinder/libexec
    sort_timeout: 86400
    resources:
      star:
        cmd: /opt/star/bin/STAR
      novosort:
        cmd: /opt/novocraft/novosort
        license: /opt/novocraft/novoalign.lic
    log:
      include_time: true
"""
import os
import sys

import toolz as tz
import yaml

from irfinder import utils
from irfinder.errors import CmdNotFound

CONFIG_ENV = "IRFINDER_SYSTEM_CONFIG"
CONFIG_NAME = "irfinder_system.yaml"

def load_system_config(config_file=None, allow_missing=True):
    """Load irfinder_system.yaml, handling standard defaults.

    Looks at an explicitly passed file, then the IRFINDER_SYSTEM_CONFIG
    environment variable and finally the config directory of the install.
    """
    if config_file is None:
        config_file = os.environ.get(CONFIG_ENV)
    if config_file is None:
        test_config = os.path.join(get_base_installdir(), "config", CONFIG_NAME)
        if os.path.exists(test_config):
            config_file = test_config
    if config_file and not os.path.exists(config_file):
        raise ValueError("Could not find input system configuration file %s" % config_file)
    if not config_file:
        if not allow_missing:
            raise ValueError("No system configuration file found, set %s" % CONFIG_ENV)
        config = {}
    else:
        config = load_config(config_file)
    config.setdefault("resources", {})
    config["irfinder_system"] = config_file
    return config

def get_base_installdir(cmd=sys.executable):
    return os.path.normpath(os.path.join(os.path.realpath(cmd), os.pardir, os.pardir))

def load_config(config_file):
    """Load YAML config file, replacing environmental variables.
    """
    with open(config_file) as in_handle:
        config = yaml.safe_load(in_handle) or {}
    config = _expand_paths(config)
    if "resources" not in config:
        config["resources"] = {}
    # lowercase resource names, the preferred way to specify
    newr = {}
    for k, v in config["resources"].items():
        if k.lower() != k:
            newr[k.lower()] = v
    config["resources"].update(newr)
    return config

def _expand_paths(config):
    for field, setting in config.items():
        if isinstance(config[field], dict):
            config[field] = _expand_paths(config[field])
        else:
            config[field] = expand_path(setting)
    return config

def expand_path(path):
    """ Combines os.path.expandvars with replacing ~ with $HOME.
    """
    try:
        return os.path.expandvars(path.replace("~", "$HOME"))
    except AttributeError:
        return path

def get_resources(name, config):
    """Retrieve resources for a program, pulling from multiple config sources.
    """
    resources = tz.get_in(["resources", name.lower()], config, {})
    if isinstance(resources, str):
        resources = {"cmd": resources}
    return resources or {}

def get_program(name, config, default=None):
    """Retrieve the full path to an external program.

    Checks an explicit `resources` entry, the libexec directory holding the
    IRFinder helper binaries, the directory of the running interpreter and
    finally the PATH.
    """
    is_ok = utils.is_executable
    program = expand_path(get_resources(name, config).get("cmd", default or name))
    if os.path.isabs(program):
        if is_ok(program):
            return program
        raise CmdNotFound("Configured program for %s is not executable: %s" % (name, program))
    libexec = config.get("libexec")
    search_dirs = ([libexec] if libexec else []) + [os.path.dirname(sys.executable)]
    search_dirs += os.environ.get("PATH", "").split(os.pathsep)
    for adir in search_dirs:
        if adir and is_ok(os.path.join(adir, program)):
            return os.path.join(adir, program)
    raise CmdNotFound("Could not find program %s in libexec, the python environment or PATH"
                      % program)
