# misc.py
#
# This file is part of pairsys.
#
#    Copyright (c) 2019 and later, Jens Koch and Peter Groszkowski
#    All rights reserved.
#
#    This source code is licensed under the BSD-style license found in the
#    LICENSE file in the root directory of this source tree.
############################################################################

import functools
import inspect
import itertools

from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Tuple

import numpy as np

import pairsys.settings

from pairsys.settings import IN_IPYTHON

if IN_IPYTHON:
    from tqdm.notebook import tqdm
else:
    from tqdm import tqdm


def parameter_grid(
    paramvals_by_name: Dict[str, Iterable[Any]]
) -> Iterator[Tuple[Tuple[int, ...], Dict[str, Any]]]:
    """Iterates over the Cartesian product of the given parameter values, the last
    parameter varying fastest. Yields `(multi_index, params)` pairs."""
    names = list(paramvals_by_name)
    values = [list(paramvals_by_name[name]) for name in names]
    for multi_index in itertools.product(*(range(len(vals)) for vals in values)):
        yield multi_index, {
            name: vals[index] for name, vals, index in zip(names, values, multi_index)
        }


def to_builtin(value: Any) -> Any:
    """Converts numpy scalars to the corresponding Python scalars; other values are
    returned unchanged."""
    if isinstance(value, np.generic):
        return value.item()
    return value


def inspect_public_API(
    module: Any,
    public_names: Optional[List[str]] = None,
    private_names: Optional[List[str]] = None,
) -> List[str]:
    """
    Find all public names in a module.

    Parameters
    ----------
    module:
        Module to be inspected
    public_names:
        Names that have already been found / manually be set to public
    private_names:
        Names that should be excluded from the public API
    """
    public_names = [] if public_names is None else list(public_names)
    private_names = private_names or []
    for name, obj in inspect.getmembers(module):
        if name.startswith("_") or name in public_names or name in private_names:
            continue

        if inspect.isclass(obj) or inspect.isfunction(obj) or inspect.ismodule(obj):
            public_names.append(name)
        elif not callable(obj) and name.isupper():  # constants
            public_names.append(name)

    return public_names


class InfoBar:
    """Static "progress" bar used whenever multiprocessing is involved.

    Parameters
    ----------
    desc:
        Description text to be displayed on the static information bar.
    num_cpus:
        Number of CPUS/cores employed in underlying calculation.
    """

    def __init__(self, desc: str, num_cpus: int) -> None:
        self.desc = desc
        self.num_cpus = num_cpus
        self.tqdm_bar = None

    def __enter__(self) -> None:
        self.tqdm_bar = tqdm(
            total=0,
            disable=(self.num_cpus == 1) or pairsys.settings.PROGRESSBAR_DISABLED,
            leave=False,
            desc=self.desc,
            bar_format="{desc}",
        )

    def __exit__(self, *args) -> None:
        if self.tqdm_bar is not None:
            self.tqdm_bar.close()


class Required:
    """Decorator class, ensuring that a given requirement or set of requirements is
    fulfilled.

    Parameters
    ----------
    dict {str: bool}
        All bool conditions have to be True to pass. The provided str keys are used to
        display information on what condition is failing.
    """

    def __init__(self, **requirements) -> None:
        self.requirements_bools = list(requirements.values())
        self.requirements_names = list(requirements.keys())

    def __call__(self, func: Callable, *args, **kwargs) -> Callable:
        @functools.wraps(func)
        def decorated_func(*args, **kwargs):
            if all(self.requirements_bools):
                return func(*args, **kwargs)
            raise ImportError(
                "use of this method requires the optional package(s):"
                " {}. If you wish to use this functionality, the corresponding"
                " package(s) must be installed manually. (Installation via `conda"
                " install -c conda-forge <packagename>` or `pip install"
                " <packagename>` is recommended.)".format(self.requirements_names)
            )

        return decorated_func
