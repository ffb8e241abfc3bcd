"""Embedded template bundles, one per project archetype."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from types import MappingProxyType
from typing import Mapping

from .schema import ProjectArchetype
from .template import TemplateBundle

__all__ = ["BUNDLE_VERSION", "TemplateStore", "default_store"]


BUNDLE_VERSION = "1.2.0"


STATIC_SITE_TEMPLATE = """\
Static site rendered with Astro and served from Cloudflare.

FILE: moon.yml
language: typescript
type: application
tasks:
  dev:
    command: astro dev
    local: true
  build:
    command: astro build
    inputs:
    - src/**/*
    - public/**/*
    - astro.config.mjs
{{#if hasNativeLibraries}}
    - {{ artifactInput }}
{{/if}}
    outputs:
    - dist
{{#if hasNativeLibraries}}
    deps:
    - {{ collectorRef }}
{{/if}}
  deploy:
    command: wrangler deploy
    deps:
    - ~:build
    local: true
FILE: package.json
{
  "name": "{{ name }}",
  "type": "module",
  "version": "0.0.1",
  "private": true,
  "scripts": {
    "dev": "astro dev",
    "build": "astro build",
    "preview": "astro preview"
  },
  "dependencies": {
    "@astrojs/cloudflare": "^12.2.0",
    "astro": "^5.5.0"
  },
  "devDependencies": {
    "wrangler": "^4.4.0"
  }
}
FILE: astro.config.mjs
import { defineConfig } from "astro/config";
import cloudflare from "@astrojs/cloudflare";

export default defineConfig({
  output: "static",
  adapter: cloudflare(),
});
FILE: wrangler.jsonc
{
  // Cloudflare Workers static assets configuration
  "name": "{{ name }}",
  "compatibility_date": "2025-04-01",
  "assets": {
    "directory": "./dist"
  }
}
FILE: src/pages/index.astro
---
const title = "{{ titleName }}";
---
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <title>{title}</title>
  </head>
  <body>
    <h1>{title}</h1>
  </body>
</html>
FILE: .gitignore
dist/
node_modules/
.wrangler/
"""


SINGLE_PAGE_APP_TEMPLATE = """\
Single page application built with React and Vite.

FILE: moon.yml
language: typescript
type: application
tasks:
  dev:
    command: vite
    local: true
  build:
    command: vite build
    inputs:
    - src/**/*
    - index.html
    - vite.config.ts
{{#if hasNativeLibraries}}
    - {{ artifactInput }}
{{/if}}
    outputs:
    - dist
{{#if hasNativeLibraries}}
    deps:
    - {{ collectorRef }}
{{/if}}
  deploy:
    command: wrangler deploy
    deps:
    - ~:build
    local: true
FILE: package.json
{
  "name": "{{ name }}",
  "private": true,
  "version": "0.0.0",
  "type": "module",
  "scripts": {
    "dev": "vite",
    "build": "tsc -b && vite build",
    "preview": "vite preview"
  },
  "dependencies": {
    "react": "^19.0.0",
    "react-dom": "^19.0.0"
  },
  "devDependencies": {
    "@types/react": "^19.0.10",
    "@types/react-dom": "^19.0.4",
    "@vitejs/plugin-react": "^4.3.4",
    "typescript": "~5.7.2",
    "vite": "^6.2.0",
    "wrangler": "^4.4.0"
  }
}
FILE: wrangler.jsonc
{
  // Cloudflare Workers static assets configuration
  "name": "{{ name }}",
  "compatibility_date": "2025-04-01",
  "assets": {
    "directory": "./dist",
    "not_found_handling": "single-page-application"
  }
}
FILE: vite.config.ts
import { defineConfig } from "vite";
import react from "@vitejs/plugin-react";

export default defineConfig({
  plugins: [react()],
});
FILE: index.html
<!doctype html>
<html lang="en">
  <head>
    <meta charset="UTF-8" />
    <title>{{ titleName }}</title>
  </head>
  <body>
    <div id="root"></div>
    <script type="module" src="/src/main.tsx"></script>
  </body>
</html>
FILE: src/main.tsx
import { StrictMode } from "react";
import { createRoot } from "react-dom/client";
import { {{ titleName }}App } from "./App";

createRoot(document.getElementById("root")!).render(
  <StrictMode>
    <{{ titleName }}App />
  </StrictMode>,
);
FILE: src/App.tsx
export function {{ titleName }}App() {
  return <h1>{{ titleName }}</h1>;
}
FILE: .gitignore
dist/
node_modules/
.wrangler/
"""


EDGE_WORKER_TEMPLATE = """\
Stateful edge worker backed by a Durable Object.

FILE: moon.yml
language: typescript
type: application
tasks:
  dev:
    command: wrangler dev
    local: true
  build:
    command: wrangler deploy --dry-run --outdir dist
    inputs:
    - src/**/*
    - wrangler.toml
{{#if hasNativeLibraries}}
    - {{ artifactInput }}
{{/if}}
    outputs:
    - dist
{{#if hasNativeLibraries}}
    deps:
    - {{ collectorRef }}
{{/if}}
  deploy:
    command: wrangler deploy
    deps:
    - ~:build
    local: true
FILE: package.json
{
  "name": "{{ name }}",
  "version": "0.0.0",
  "private": true,
  "scripts": {
    "dev": "wrangler dev",
    "deploy": "wrangler deploy"
  },
  "devDependencies": {
    "@cloudflare/workers-types": "^4.20250327.0",
    "typescript": "^5.7.2",
    "wrangler": "^4.4.0"
  }
}
FILE: wrangler.toml
name = "{{ name }}"
main = "src/index.ts"
compatibility_date = "2025-04-01"

[[durable_objects.bindings]]
name = "{{ upperName }}"
class_name = "{{ titleName }}"

[[migrations]]
tag = "v1"
new_sqlite_classes = ["{{ titleName }}"]
FILE: src/index.ts
import { DurableObject } from "cloudflare:workers";

export interface Env {
  {{ upperName }}: DurableObjectNamespace<{{ titleName }}>;
}

export class {{ titleName }} extends DurableObject<Env> {
  async increment(): Promise<number> {
    const value = ((await this.ctx.storage.get<number>("value")) ?? 0) + 1;
    await this.ctx.storage.put("value", value);
    return value;
  }
}

export default {
  async fetch(request: Request, env: Env): Promise<Response> {
    const id = env.{{ upperName }}.idFromName(new URL(request.url).pathname);
    const value = await env.{{ upperName }}.get(id).increment();
    return new Response(String(value));
  },
} satisfies ExportedHandler<Env>;
FILE: tsconfig.json
{
  "compilerOptions": {
    "target": "es2022",
    "module": "es2022",
    "moduleResolution": "bundler",
    "strict": true,
    "types": ["@cloudflare/workers-types"]
  }
}
FILE: .gitignore
node_modules/
.wrangler/
dist/
"""


NATIVE_LIBRARY_TEMPLATE = """\
Rust library compiled to WebAssembly and gathered by the collector project.

FILE: moon.yml
language: rust
type: library
tasks:
  build:
    command: cargo build --target wasm32-unknown-unknown --release
    inputs:
    - src/**/*
    - Cargo.toml
    outputs:
    - target/wasm32-unknown-unknown/release/*.wasm
  test:
    command: cargo test
FILE: Cargo.toml
[package]
name = "{{ name }}"
version = "0.1.0"
edition = "2021"

[lib]
crate-type = ["cdylib", "rlib"]

[profile.release]
opt-level = "s"
lto = true
FILE: src/lib.rs
//! {{ titleName }} WebAssembly module.

#[no_mangle]
pub extern "C" fn add(left: i32, right: i32) -> i32 {
    left + right
}

#[cfg(test)]
mod tests {
    use super::*;

    #[test]
    fn adds() {
        assert_eq!(add(2, 2), 4);
    }
}
FILE: .gitignore
/target
"""


WORKSPACE_TEMPLATE = """\
Monorepo root: orchestrator workspace, toolchain and the artifact collector.

FILE: .moon/workspace.yml
projects:
  {{ collectorName }}: {{ collectorName }}
vcs:
  manager: git
  defaultBranch: main
FILE: .moon/toolchain.yml
node:
  version: 22.14.0
  packageManager: pnpm
rust:
  version: stable
  targets:
  - wasm32-unknown-unknown
FILE: package.json
{
  "name": "{{ name }}",
  "private": true,
  "workspaces": []
}
FILE: {{ collectorName }}/moon.yml
language: bash
type: library
tasks:
  {{ collectorTask }}:
    command: sh gather.sh
    deps: []
    outputs:
    - '*.wasm'
FILE: {{ collectorName }}/gather.sh
#!/bin/sh
# Copy every compiled native library into this directory.
set -eu
cd "$(dirname "$0")"
for wasm in ../crates/*/target/wasm32-unknown-unknown/release/*.wasm; do
  [ -e "$wasm" ] && cp "$wasm" .
done
FILE: {{ collectorName }}/.gitignore
*.wasm
FILE: .gitignore
node_modules/
.moon/cache/
target/
dist/
FILE: README.md
# {{ titleName }}

Monorepo managed with `monoweave`.

- `monoweave add <type> <name>` adds a project.
- `monoweave rename <current> <new>` renames one.
- `moon run :build` builds everything.
"""


@dataclass(frozen=True, slots=True)
class TemplateStore:
    """Read-only registry of template bundles keyed by archetype."""

    bundles: Mapping[ProjectArchetype, TemplateBundle]
    workspace: TemplateBundle

    def get(self, archetype: ProjectArchetype) -> TemplateBundle:
        return self.bundles[archetype]

    @classmethod
    def from_sources(
        cls,
        sources: Mapping[ProjectArchetype, str],
        workspace_source: str,
        *,
        version: str = BUNDLE_VERSION,
    ) -> "TemplateStore":
        """Parse raw bundle sources into an immutable store."""

        bundles = {
            archetype: TemplateBundle.parse(archetype.value, source, version=version)
            for archetype, source in sources.items()
        }
        missing = [archetype.value for archetype in ProjectArchetype if archetype not in bundles]
        if missing:
            raise ValueError(f"template store is missing bundles for: {', '.join(missing)}")
        return cls(
            bundles=MappingProxyType(bundles),
            workspace=TemplateBundle.parse("workspace", workspace_source, version=version),
        )


@lru_cache(maxsize=1)
def default_store() -> TemplateStore:
    """Return the store built from the embedded bundles."""

    return TemplateStore.from_sources(
        {
            ProjectArchetype.STATIC_SITE: STATIC_SITE_TEMPLATE,
            ProjectArchetype.SINGLE_PAGE_APP: SINGLE_PAGE_APP_TEMPLATE,
            ProjectArchetype.EDGE_WORKER: EDGE_WORKER_TEMPLATE,
            ProjectArchetype.NATIVE_LIBRARY: NATIVE_LIBRARY_TEMPLATE,
        },
        WORKSPACE_TEMPLATE,
    )
