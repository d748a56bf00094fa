# File: modulegen/stubs.py
"""
ModuleGen - Stub Resolution & Placeholder Substitution
========================================================
Synthesizers only produce ``{placeholder: fragment}`` maps.  This module
finds the template a map is rendered into and performs the substitution.

Resolution order for a stub key such as ``controller-relation``:
    1. ``<stub directory>/controller-relation.stub`` (caller supplied)
    2. the packaged default in ``DEFAULT_STUBS``
    3. ``StubNotFoundError``

Placeholders are written ``{{ name }}`` (``{{name}}`` is accepted too).
Unknown placeholders are left untouched and substitution is single pass,
so a fragment that happens to contain ``{{ ... }}`` is never re-expanded.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from modulegen.utils import read_file

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modulegen.stubs")

_PLACEHOLDER_RE: re.Pattern[str] = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")


class StubNotFoundError(FileNotFoundError):
    """No caller stub and no packaged default exist for a key."""

    def __init__(self, key: str, searched: Optional[Path] = None) -> None:
        self.key: str = key
        self.searched: Optional[Path] = searched
        where: str = f" (looked in {searched})" if searched else ""
        super().__init__(f"Stub not found for key '{key}'{where}.")


# ---------------------------------------------------------------------------
# Packaged default stubs
# ---------------------------------------------------------------------------

MODEL_STUB: str = """<?php

namespace App\\Models;

use Illuminate\\Database\\Eloquent\\Model;
{{ use_statements }}
class {{ model }} extends Model
{{{ traits }}{{ primary_key }}
    protected $fillable = [
        {{ fillable }}
    ];

    protected function casts(): array
    {
        return [{{ casts }}];
    }{{ getter }}{{ setter }}{{ relations }}
}
"""

MIGRATION_STUB: str = """<?php

use Illuminate\\Database\\Migrations\\Migration;
use Illuminate\\Database\\Schema\\Blueprint;
use Illuminate\\Support\\Facades\\Schema;

return new class extends Migration
{
    public function up(): void
    {
        Schema::create('{{ table }}', function (Blueprint $table) {
            $table->id();
{{ columns }}
            $table->timestamps();
        });
    }

    public function down(): void
    {
        Schema::dropIfExists('{{ table }}');
    }
};
"""

# Used by the migration synthesizer alone when no migration stub resolves.
MIGRATION_FALLBACK_STUB: str = """<?php

use Illuminate\\Database\\Migrations\\Migration;
use Illuminate\\Database\\Schema\\Blueprint;
use Illuminate\\Support\\Facades\\Schema;

return new class extends Migration
{
    public function up(): void
    {
        Schema::create('{{ table }}', function (Blueprint $table) {
            $table->id();
            $table->timestamps();
        });
    }

    public function down(): void
    {
        Schema::dropIfExists('{{ table }}');
    }
};
"""

REQUEST_STUB: str = """<?php

namespace App\\Http\\Requests;

use Illuminate\\Foundation\\Http\\FormRequest;

class {{ class }} extends FormRequest
{
    public function authorize(): bool
    {
        return true;
    }

    public function rules(): array
    {
        return [
            {{ rules }}
        ];
    }
}
"""

RESOURCE_STUB: str = """<?php

namespace App\\Http\\Resources\\{{ model }};

use Illuminate\\Http\\Resources\\Json\\JsonResource;

class {{ class }} extends JsonResource
{
    public function toArray($request): array
    {
        return [
            {{ fields }}
        ];
    }
}
"""

COLLECTION_STUB: str = """<?php

namespace App\\Http\\Resources\\{{ model }};

use Illuminate\\Http\\Resources\\Json\\ResourceCollection;

class {{ class }} extends ResourceCollection
{
    public function toArray($request): array
    {
        return [
            'data' => $this->collection->map(fn (${{ modelVar }}) => new {{ model }}Resource(${{ modelVar }})),
        ];
    }
}
"""

SERVICE_STUB: str = """<?php

namespace App\\Services;

use App\\Models\\{{ model }};
use Illuminate\\Http\\UploadedFile;
use Illuminate\\Support\\Facades\\DB;
use Illuminate\\Support\\Str;

class {{ class }}
{
    public function list(array $filters = [])
    {
        return {{ model }}::query()->latest()->paginate($filters['per_page'] ?? 15);
    }

    public function store(array $data): {{ model }}
    {
{{ storeBody }}
    }

    public function update({{ model }} ${{ variable }}, array $data): {{ model }}
    {
{{ updateBody }}
    }

    public function delete({{ model }} ${{ variable }}): void
    {
{{ destroyBody }}
    }
}
"""

SERVICE_RELATION_STUB: str = """<?php

namespace App\\Services;

use App\\Models\\{{ model }};
{{ relationImports }}use Illuminate\\Http\\UploadedFile;
use Illuminate\\Support\\Arr;
use Illuminate\\Support\\Facades\\DB;
use Illuminate\\Support\\Str;

class {{ class }}
{
    public function list(array $filters = [])
    {
        return {{ model }}::query()->with([{{ with }}])->latest()->paginate($filters['per_page'] ?? 15);
    }

    /**
     * Create a {{ variable }} together with its nested relations.
     */
    public function store(array $data): {{ model }}
    {
{{ storeBody }}
    }

    /**
     * Update a {{ variable }} and reconcile its nested relations.
     */
    public function update({{ model }} ${{ variable }}, array $data): {{ model }}
    {
{{ updateBody }}
    }

    public function delete({{ model }} ${{ variable }}): void
    {
{{ destroyBody }}
    }
}
"""

_CONTROLLER_HEAD: str = """<?php

namespace App\\Http\\Controllers;

use App\\Http\\Requests\\{{ model }}Request;
use App\\Http\\Resources\\{{ model }}\\{{ model }}Collection;
use App\\Http\\Resources\\{{ model }}\\{{ model }}Resource;
use App\\Models\\{{ model }};
"""

CONTROLLER_STUB: str = _CONTROLLER_HEAD + """use App\\Services\\{{ model }}Service;
use Illuminate\\Http\\JsonResponse;
use Illuminate\\Http\\Request;

class {{ class }} extends Controller
{
    public function __construct(private {{ model }}Service ${{ serviceUsage }})
    {
    }

    public function index(Request $request): {{ model }}Collection
    {
        return new {{ model }}Collection($this->{{ serviceUsage }}->list($request->all()));
    }

    public function store({{ model }}Request $request): {{ model }}Resource
    {
        ${{ variable }} = $this->{{ serviceUsage }}->store($request->validated());

        return new {{ model }}Resource(${{ variable }});
    }

    public function show({{ model }} ${{ variable }}): {{ model }}Resource
    {
        return new {{ model }}Resource(${{ variable }});
    }

    public function update({{ model }}Request $request, {{ model }} ${{ variable }}): {{ model }}Resource
    {
        ${{ variable }} = $this->{{ serviceUsage }}->update(${{ variable }}, $request->validated());

        return new {{ model }}Resource(${{ variable }});
    }

    public function destroy({{ model }} ${{ variable }}): JsonResponse
    {
        $this->{{ serviceUsage }}->delete(${{ variable }});

        return response()->json(['message' => '{{ model }} deleted successfully.']);
    }
}
"""

CONTROLLER_RELATION_STUB: str = _CONTROLLER_HEAD + """use App\\Services\\{{ model }}Service;
use Illuminate\\Http\\JsonResponse;
use Illuminate\\Http\\Request;

class {{ class }} extends Controller
{
    public function __construct(private {{ model }}Service ${{ serviceUsage }})
    {
    }

    public function index(Request $request): {{ model }}Collection
    {
        return new {{ model }}Collection($this->{{ serviceUsage }}->list($request->all()));
    }

    /**
     * Nested {{ modelPlural }} payload keys are persisted in one transaction.
     */
    public function store({{ model }}Request $request): {{ model }}Resource
    {
        ${{ variable }} = $this->{{ serviceUsage }}->store($request->validated());

        return new {{ model }}Resource(${{ variable }});
    }

    public function show({{ model }} ${{ variable }}): {{ model }}Resource
    {
        return new {{ model }}Resource(${{ variable }}->load([{{ with }}]));
    }

    public function update({{ model }}Request $request, {{ model }} ${{ variable }}): {{ model }}Resource
    {
        ${{ variable }} = $this->{{ serviceUsage }}->update(${{ variable }}, $request->validated());

        return new {{ model }}Resource(${{ variable }});
    }

    public function destroy({{ model }} ${{ variable }}): JsonResponse
    {
        $this->{{ serviceUsage }}->delete(${{ variable }});

        return response()->json(['message' => '{{ model }} deleted successfully.']);
    }
}
"""

CONTROLLER_WITHOUT_SERVICE_STUB: str = _CONTROLLER_HEAD + """{{ relationImports }}use Illuminate\\Http\\JsonResponse;
use Illuminate\\Http\\Request;
use Illuminate\\Http\\UploadedFile;
use Illuminate\\Support\\Arr;
use Illuminate\\Support\\Facades\\DB;
use Illuminate\\Support\\Str;

class {{ class }} extends Controller
{
    public function index(Request $request): {{ model }}Collection
    {
        return new {{ model }}Collection({{ model }}::query()->with([{{ with }}])->latest()->paginate($request->integer('per_page', 15)));
    }

    public function store({{ model }}Request $request): {{ model }}Resource
    {
        return new {{ model }}Resource($this->persist($request->validated()));
    }

    public function show({{ model }} ${{ variable }}): {{ model }}Resource
    {
        return new {{ model }}Resource(${{ variable }}->load([{{ with }}]));
    }

    public function update({{ model }}Request $request, {{ model }} ${{ variable }}): {{ model }}Resource
    {
        return new {{ model }}Resource($this->modify(${{ variable }}, $request->validated()));
    }

    public function destroy({{ model }} ${{ variable }}): JsonResponse
    {
        $this->remove(${{ variable }});

        return response()->json(['message' => '{{ model }} deleted successfully.']);
    }

    private function persist(array $data): {{ model }}
    {
{{ storeBody }}
    }

    private function modify({{ model }} ${{ variable }}, array $data): {{ model }}
    {
{{ updateBody }}
    }

    private function remove({{ model }} ${{ variable }}): void
    {
{{ destroyBody }}
    }
}
"""

FACTORY_STUB: str = """<?php

namespace Database\\Factories;

use App\\Models\\{{ model }};
use Illuminate\\Database\\Eloquent\\Factories\\Factory;

class {{ model }}Factory extends Factory
{
    protected $model = {{ model }}::class;

    public function definition(): array
    {
        return [
{{ fields }}
        ];
    }
}
"""

SEEDER_STUB: str = """<?php

namespace Database\\Seeders;

use App\\Models\\{{ model }};
use Illuminate\\Database\\Seeder;

class {{ model }}Seeder extends Seeder
{
    public function run(): void
    {
        {{ model }}::factory()->count(10)->create();
    }
}
"""

DEFAULT_STUBS: Dict[str, str] = {
    "model": MODEL_STUB,
    "migration": MIGRATION_STUB,
    "request": REQUEST_STUB,
    "resource": RESOURCE_STUB,
    "collection": COLLECTION_STUB,
    "service": SERVICE_STUB,
    "service-relation": SERVICE_RELATION_STUB,
    "controller": CONTROLLER_STUB,
    "controller-relation": CONTROLLER_RELATION_STUB,
    "controller-without-service": CONTROLLER_WITHOUT_SERVICE_STUB,
    "factory": FACTORY_STUB,
    "seeder": SEEDER_STUB,
}


# ---------------------------------------------------------------------------
# Substitution
# ---------------------------------------------------------------------------


def render_stub(content: str, replacements: Mapping[str, str]) -> str:
    """
    Substitute ``{{ name }}`` placeholders in one pass.

    Keys in *replacements* may be given bare (``model``) or braced
    (``{{ model }}``).
    """
    values: Dict[str, str] = {}
    for key, value in replacements.items():
        match: Optional[re.Match[str]] = _PLACEHOLDER_RE.fullmatch(key.strip())
        values[match.group(1) if match else key] = str(value)

    def _substitute(found: re.Match[str]) -> str:
        name: str = found.group(1)
        return values[name] if name in values else found.group(0)

    return _PLACEHOLDER_RE.sub(_substitute, content)


def placeholders_in(content: str) -> List[str]:
    """Distinct placeholder names in order of first appearance."""
    seen: List[str] = []
    for name in _PLACEHOLDER_RE.findall(content):
        if name not in seen:
            seen.append(name)
    return seen


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------


class StubResolver:
    """Find the template text for a stub key."""

    def __init__(
        self,
        stub_directory: Optional[Path] = None,
        use_defaults: bool = True,
    ) -> None:
        self.stub_directory: Optional[Path] = Path(stub_directory) if stub_directory else None
        self.use_defaults: bool = use_defaults

    def _custom_path(self, key: str) -> Optional[Path]:
        if self.stub_directory is None:
            return None
        candidate: Path = self.stub_directory / f"{key}.stub"
        return candidate if candidate.is_file() else None

    def has(self, key: str) -> bool:
        return self._custom_path(key) is not None or (
            self.use_defaults and key in DEFAULT_STUBS
        )

    def source(self, key: str) -> str:
        """Where *key* resolves from: a file path, ``default`` or ``missing``."""
        custom: Optional[Path] = self._custom_path(key)
        if custom is not None:
            return str(custom)
        if self.use_defaults and key in DEFAULT_STUBS:
            return "default"
        return "missing"

    def resolve(self, key: str) -> str:
        """
        Template text for *key*.

        Raises:
            StubNotFoundError: Neither a caller stub nor a default exists.
        """
        custom: Optional[Path] = self._custom_path(key)
        if custom is not None:
            logger.debug("Stub '%s' resolved from %s", key, custom)
            return read_file(custom)
        if self.use_defaults and key in DEFAULT_STUBS:
            logger.debug("Stub '%s' resolved from packaged defaults.", key)
            return DEFAULT_STUBS[key]
        raise StubNotFoundError(key, self.stub_directory)

    def render(self, key: str, replacements: Mapping[str, str]) -> str:
        return render_stub(self.resolve(key), replacements)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "StubNotFoundError",
    "DEFAULT_STUBS",
    "MIGRATION_FALLBACK_STUB",
    "render_stub",
    "placeholders_in",
    "StubResolver",
]

logger.debug("modulegen.stubs loaded — %d default stubs.", len(DEFAULT_STUBS))
