"""Known auxiliary libraries and the signals that reveal them.

A library is detected when *any* of its dependency names appears in the
manifest, *any* marker file exists, or *any* marker directory exists.
``keywords`` are lower-case path fragments used to tag individual files.
"""

from __future__ import annotations

from dataclasses import dataclass

from context_collector.domain.entities import LibraryRole


@dataclass(frozen=True, slots=True)
class LibraryPattern:
    name: str
    role: LibraryRole
    dependencies: tuple[str, ...] = ()
    files: tuple[str, ...] = ()
    directories: tuple[str, ...] = ()
    keywords: tuple[str, ...] = ()


_A = LibraryRole.AUTH
_U = LibraryRole.UI
_D = LibraryRole.DATABASE
_API = LibraryRole.API
_S = LibraryRole.STATE
_F = LibraryRole.DATA_FETCHING
_ST = LibraryRole.STYLING
_T = LibraryRole.TESTING
_UT = LibraryRole.UTILITY


LIBRARY_PATTERNS: tuple[LibraryPattern, ...] = (
    # ── Authentication ──────────────────────────────────────────────────
    LibraryPattern(
        "NextAuth.js", _A,
        dependencies=("next-auth",),
        files=("src/server/auth.ts", "src/pages/api/auth/[...nextauth].ts"),
        keywords=("nextauth", "next-auth", "api/auth/"),
    ),
    LibraryPattern(
        "Auth.js", _A,
        dependencies=("@auth/nextjs", "@auth/core"),
        files=("src/app/api/auth/[...nextauth]/route.ts", "auth.ts"),
        keywords=("api/auth/",),
    ),
    LibraryPattern(
        "Clerk", _A,
        dependencies=("@clerk/nextjs",),
        keywords=("clerk",),
    ),
    LibraryPattern(
        "Better Auth", _A,
        dependencies=("better-auth",),
        keywords=("better-auth",),
    ),
    LibraryPattern("Stack Auth", _A, dependencies=("@stackframe/stack",), files=("src/stack.ts",)),
    LibraryPattern("Lucia", _A, dependencies=("lucia",), files=("src/lib/lucia.ts",), keywords=("lucia",)),
    LibraryPattern("Auth0", _A, dependencies=("@auth0/nextjs-auth0",), keywords=("auth0",)),
    LibraryPattern(
        "Supabase Auth", _A,
        dependencies=("@supabase/auth-js", "@supabase/auth-helpers-nextjs", "@supabase/ssr"),
        keywords=("supabase/auth",),
    ),
    # ── UI ──────────────────────────────────────────────────────────────
    LibraryPattern(
        "shadcn/ui", _U,
        files=("components.json",),
        directories=("src/components/ui", "components/ui"),
        keywords=("components/ui/",),
    ),
    LibraryPattern("Material-UI", _U, dependencies=("@mui/material",), keywords=("mui",)),
    LibraryPattern("Chakra UI", _U, dependencies=("@chakra-ui/react",), keywords=("chakra",)),
    LibraryPattern("Ant Design", _U, dependencies=("antd",), keywords=("antd",)),
    LibraryPattern("NextUI", _U, dependencies=("@nextui-org/react",)),
    LibraryPattern("HeroUI", _U, dependencies=("@heroui/react",)),
    LibraryPattern("Mantine", _U, dependencies=("@mantine/core",), keywords=("mantine",)),
    LibraryPattern("Flowbite", _U, dependencies=("flowbite-react",)),
    LibraryPattern("DaisyUI", _U, dependencies=("daisyui",)),
    LibraryPattern(
        "Radix UI", _U,
        dependencies=("@radix-ui/react-primitives", "@radix-ui/react-dialog", "@radix-ui/react-slot"),
        keywords=("radix",),
    ),
    LibraryPattern("Headless UI", _U, dependencies=("@headlessui/react",), keywords=("headless",)),
    # ── Database ────────────────────────────────────────────────────────
    LibraryPattern(
        "Prisma", _D,
        dependencies=("prisma", "@prisma/client"),
        files=("prisma/schema.prisma", "schema.prisma"),
        directories=("prisma",),
        keywords=("prisma",),
    ),
    LibraryPattern(
        "ZenStack", _D,
        dependencies=("zenstack", "@zenstackhq/runtime"),
        files=("schema.zmodel",),
        keywords=(".zmodel", "zenstack"),
    ),
    LibraryPattern(
        "Drizzle ORM", _D,
        dependencies=("drizzle-orm",),
        files=("drizzle.config.ts", "drizzle.config.js"),
        directories=("drizzle",),
        keywords=("drizzle",),
    ),
    LibraryPattern(
        "Supabase", _D,
        dependencies=("@supabase/supabase-js",),
        files=("src/lib/supabase.ts",),
        directories=("supabase",),
        keywords=("supabase",),
    ),
    LibraryPattern("Mongoose", _D, dependencies=("mongoose", "mongodb"), keywords=("mongo", "models/")),
    # ── API patterns ────────────────────────────────────────────────────
    LibraryPattern(
        "tRPC", _API,
        dependencies=("@trpc/server", "@trpc/client", "@trpc/react-query"),
        files=("src/server/api/trpc.ts",),
        directories=("src/server/api",),
        keywords=("trpc", "server/api/"),
    ),
    LibraryPattern(
        "GraphQL", _API,
        dependencies=("graphql",),
        files=("schema.graphql",),
        directories=("graphql",),
        keywords=("graphql",),
    ),
    # ── State ───────────────────────────────────────────────────────────
    LibraryPattern("Zustand", _S, dependencies=("zustand",), directories=("src/store", "store"), keywords=("store",)),
    LibraryPattern("Redux Toolkit", _S, dependencies=("@reduxjs/toolkit",), keywords=("redux", "slice")),
    LibraryPattern("Jotai", _S, dependencies=("jotai",), directories=("src/atoms", "atoms"), keywords=("atoms",)),
    LibraryPattern("Valtio", _S, dependencies=("valtio",)),
    LibraryPattern("Recoil", _S, dependencies=("recoil",)),
    LibraryPattern("MobX", _S, dependencies=("mobx", "mobx-react-lite")),
    # ── Data fetching ───────────────────────────────────────────────────
    LibraryPattern("TanStack Query", _F, dependencies=("@tanstack/react-query",), keywords=("query", "mutation")),
    LibraryPattern("SWR", _F, dependencies=("swr",), keywords=("swr",)),
    LibraryPattern("Apollo Client", _F, dependencies=("@apollo/client", "apollo-client"), keywords=("apollo",)),
    LibraryPattern("Relay", _F, dependencies=("relay-runtime",)),
    # ── Styling ─────────────────────────────────────────────────────────
    LibraryPattern(
        "Tailwind CSS", _ST,
        dependencies=("tailwindcss",),
        files=("tailwind.config.js", "tailwind.config.ts", "tailwind.config.mjs"),
        keywords=("tailwind",),
    ),
    LibraryPattern("PostCSS", _ST, dependencies=("postcss",), files=("postcss.config.js", "postcss.config.mjs")),
    LibraryPattern("Styled Components", _ST, dependencies=("styled-components",), keywords=("styled",)),
    LibraryPattern("Emotion", _ST, dependencies=("@emotion/react",)),
    # ── Testing ─────────────────────────────────────────────────────────
    LibraryPattern(
        "Jest", _T,
        dependencies=("jest", "@jest/core"),
        files=("jest.config.js", "jest.config.ts"),
        directories=("__tests__",),
        keywords=("__tests__/",),
    ),
    LibraryPattern("Vitest", _T, dependencies=("vitest",), files=("vitest.config.ts", "vitest.config.mts")),
    LibraryPattern(
        "Playwright", _T,
        dependencies=("@playwright/test", "playwright"),
        files=("playwright.config.ts",),
        keywords=("e2e/", "playwright"),
    ),
    LibraryPattern(
        "Cypress", _T,
        dependencies=("cypress",),
        files=("cypress.config.js", "cypress.config.ts"),
        directories=("cypress",),
        keywords=("cypress",),
    ),
    LibraryPattern("Testing Library", _T, dependencies=("@testing-library/react",)),
    LibraryPattern(
        "Storybook", _T,
        dependencies=("storybook", "@storybook/react"),
        directories=(".storybook",),
        keywords=(".stories.",),
    ),
    # ── Utilities ───────────────────────────────────────────────────────
    LibraryPattern("Zod", _UT, dependencies=("zod",), keywords=("schema", "validators")),
    LibraryPattern("React Hook Form", _UT, dependencies=("react-hook-form",), keywords=("form",)),
    LibraryPattern("Next SEO", _UT, dependencies=("next-seo",), keywords=("seo",)),
    LibraryPattern("date-fns", _UT, dependencies=("date-fns",)),
    LibraryPattern("Lodash", _UT, dependencies=("lodash",)),
    LibraryPattern("Framer Motion", _UT, dependencies=("framer-motion",), keywords=("motion", "animation")),
)


def patterns_by_name() -> dict[str, LibraryPattern]:
    return {p.name: p for p in LIBRARY_PATTERNS}
