# File: modulegen/routes.py
"""
ModuleGen - Route Registration
================================
Append-only registration of resource routes in the project's route file.

* api mode: ``routes/api.php`` + ``Route::apiResource(...)``
* web mode: ``routes/web.php`` + ``Route::resource(...)``

The file is created with framework-default content when it is missing.  A
route line is appended as ``"\\n{line}\\n"`` only when the exact line is not
already present, so repeated runs leave the file byte-identical.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List

from modulegen.utils import read_file, write_file

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modulegen.routes")

API_ROUTES_FILE: str = "routes/api.php"
WEB_ROUTES_FILE: str = "routes/web.php"

DEFAULT_API_CONTENT: str = """<?php

use Illuminate\\Http\\Request;
use Illuminate\\Support\\Facades\\Route;

/*
|--------------------------------------------------------------------------
| API Routes
|--------------------------------------------------------------------------
|
| Here is where you can register API routes for your application. These
| routes are loaded by the RouteServiceProvider and all of them will
| be assigned to the "api" middleware group. Make something great!
|
*/

Route::get('/user', function (Request $request) {
    return $request->user();
})->middleware('auth:sanctum');
"""

DEFAULT_WEB_CONTENT: str = """<?php

use Illuminate\\Support\\Facades\\Route;

/*
|--------------------------------------------------------------------------
| Web Routes
|--------------------------------------------------------------------------
|
| Here is where you can register web routes for your application. These
| routes are loaded by the RouteServiceProvider and all of them will
| be assigned to the "web" middleware group. Make something great!
|
*/

Route::get('/', function () {
    return view('welcome');
});
"""


@dataclass(frozen=True, slots=True)
class RouteResult:
    """Outcome of one route registration."""

    line: str
    route_file: str
    added: bool
    file_created: bool = False

    @property
    def message(self) -> str:
        if self.added:
            return f"Route added: {self.line}"
        return f"Route already exists: {self.line}"


def route_line(table: str, controller: str, api: bool = True) -> str:
    """The registration statement for one resource controller."""
    method: str = "apiResource" if api else "resource"
    return f"Route::{method}('{table}', \\App\\Http\\Controllers\\{controller}::class);"


class RouteRegistry:
    """
    Registers resource routes in ``routes/api.php`` or ``routes/web.php``.

    Usage::

        registry = RouteRegistry(Path("."), api=True)
        result = registry.register("authors", "AuthorController")
    """

    def __init__(self, root: Path, api: bool = True) -> None:
        self.root: Path = Path(root)
        self.api: bool = api

    @property
    def relative_path(self) -> str:
        return API_ROUTES_FILE if self.api else WEB_ROUTES_FILE

    @property
    def path(self) -> Path:
        return self.root / self.relative_path

    @property
    def default_content(self) -> str:
        return DEFAULT_API_CONTENT if self.api else DEFAULT_WEB_CONTENT

    def ensure_file(self) -> bool:
        """Create the route file with default content; True when created."""
        if self.path.exists():
            return False
        write_file(self.path, self.default_content)
        logger.info("Created %s.", self.relative_path)
        return True

    def contains(self, line: str) -> bool:
        return self.path.exists() and line in read_file(self.path)

    def register(self, table: str, controller: str) -> RouteResult:
        """
        Append the resource route for *controller* unless it is present.

        Raises:
            OSError: The route file could not be read or written.
        """
        created: bool = self.ensure_file()
        line: str = route_line(table, controller, self.api)
        content: str = read_file(self.path)

        if line in content:
            logger.warning("Route already exists: %s", line)
            return RouteResult(line, self.relative_path, added=False, file_created=created)

        write_file(self.path, f"{content}\n{line}\n")
        logger.info("%s route added: %s", "API" if self.api else "Web", line)
        return RouteResult(line, self.relative_path, added=True, file_created=created)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "API_ROUTES_FILE",
    "WEB_ROUTES_FILE",
    "DEFAULT_API_CONTENT",
    "DEFAULT_WEB_CONTENT",
    "RouteResult",
    "route_line",
    "RouteRegistry",
]

logger.debug("modulegen.routes loaded.")
