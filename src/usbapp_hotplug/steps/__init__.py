# SPDX-FileCopyrightText: 2026 usb-app-hotplug contributors
#
# SPDX-License-Identifier: GPL-3.0-or-later

"""Add and remove handler pipelines.

Importing this package registers all steps with their pipeline.
"""

from ..pipeline import Pipeline
from .contexts import AddContext, Components, RemoveContext

add_pipeline = Pipeline[AddContext]("add")
remove_pipeline = Pipeline[RemoveContext]("remove")

# Import step modules so their decorators register with the pipelines.
from . import add_steps as _  # noqa: F401, E402
from . import remove_steps as _  # noqa: F401, E402

__all__ = [
    "AddContext",
    "Components",
    "RemoveContext",
    "add_pipeline",
    "remove_pipeline",
]
