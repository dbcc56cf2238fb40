#!/usr/bin/env python3
"""
seed.py

CLI entry point: load a small sample design system into the catalog.

Tokens first, then atoms → molecules → organisms (so every component's
dependencies already exist when it is synced), then token usage links.
Everything goes through the normal sync pipeline.

Author: Eric G. Suchanek, PhD
"""

from __future__ import annotations

import argparse
import json
import logging
import textwrap

from design_kg.config import Settings, add_settings_args, configure_logging
from design_kg.kg import DesignKG

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Sample data
# ---------------------------------------------------------------------------

SAMPLE_TOKENS = [
    ("color.primary.500", "color", "#3B82F6", "Primary brand blue"),
    ("color.neutral.900", "color", "#111827", "Dark text color"),
    ("color.neutral.100", "color", "#F3F4F6", "Light background"),
    ("spacing.sm", "spacing", "8px", "Small spacing unit"),
    ("spacing.md", "spacing", "16px", "Medium spacing unit"),
    ("spacing.lg", "spacing", "24px", "Large spacing unit"),
    ("radius.md", "radius", "8px", "Medium border radius"),
    ("font.size.sm", "typography", "14px", "Small font size"),
    ("font.size.base", "typography", "16px", "Base font size"),
    ("font.size.lg", "typography", "20px", "Large font size"),
]


def _src(s: str) -> str:
    return textwrap.dedent(s).strip("\n")


SAMPLE_COMPONENTS = [
    {
        "name": "Button",
        "tier": "atom",
        "code": _src(
            """
            import { forwardRef } from "react";

            export const Button = forwardRef(({ variant = "primary", size = "md", children, ...props }, ref) => (
              <button ref={ref} className={`btn btn--${variant} btn--${size}`} {...props}>
                {children}
              </button>
            ));
            """
        ),
        "usage_rules": "Use Button for all clickable actions. Primary variant for main CTAs, "
        "secondary for less prominent actions. Always provide accessible labels.",
        "requirements": "Must support disabled state, loading state, and keyboard navigation. "
        "Renders as <button> by default.",
        "examples": '<Button variant="primary">Save</Button>\n'
        '<Button variant="secondary" disabled>Cancel</Button>',
    },
    {
        "name": "Icon",
        "tier": "atom",
        "code": _src(
            """
            import { LucideIcon } from "lucide-react";

            export const Icon = ({ icon: IconComponent, size = 20, ...props }) => (
              <IconComponent size={size} {...props} />
            );
            """
        ),
        "usage_rules": "Use Icon to render Lucide icons consistently. Always pair with "
        "aria-label when used standalone (not next to text).",
        "requirements": "Must accept any Lucide icon component. Supports size and color props.",
    },
    {
        "name": "Text",
        "tier": "atom",
        "code": _src(
            """
            export const Text = ({ as: Tag = "p", size = "base", children, ...props }) => (
              <Tag className={`text text--${size}`} {...props}>{children}</Tag>
            );
            """
        ),
        "usage_rules": "Use Text for all typography. Choose semantic HTML tags via the 'as' "
        "prop. Use size tokens for consistent sizing.",
        "requirements": "Must support all heading levels and paragraph. Must apply design "
        "token font sizes.",
    },
    {
        "name": "Input",
        "tier": "atom",
        "code": _src(
            """
            import { forwardRef } from "react";

            export const Input = forwardRef(({ label, error, ...props }, ref) => (
              <div className="input-wrapper">
                {label && <label className="input-label">{label}</label>}
                <input ref={ref} className={`input ${error ? "input--error" : ""}`} {...props} />
                {error && <span className="input-error">{error}</span>}
              </div>
            ));
            """
        ),
        "usage_rules": "Use Input for all single-line text inputs. Always provide a label for "
        "accessibility. Show error messages inline.",
        "requirements": "Must support ref forwarding. Must show validation errors. Must be "
        "accessible with proper label association.",
    },
    {
        "name": "SearchBar",
        "tier": "molecule",
        "code": _src(
            """
            import { Input } from "./Input";
            import { Button } from "./Button";
            import { Icon } from "./Icon";
            import { Search } from "lucide-react";

            export const SearchBar = ({ onSearch, ...props }) => (
              <form className="search-bar" onSubmit={(e) => { e.preventDefault(); onSearch(e.currentTarget.query.value); }}>
                <Input name="query" placeholder="Search..." {...props} />
                <Button type="submit" variant="primary">
                  <Icon icon={Search} size={16} />
                </Button>
              </form>
            );
            """
        ),
        "usage_rules": "Use SearchBar for search interfaces. Place at the top of content "
        "areas. Submits on Enter or button click.",
        "requirements": "Must call onSearch with the query string. Must be a semantic form element.",
    },
    {
        "name": "Card",
        "tier": "molecule",
        "code": _src(
            """
            import { Text } from "./Text";

            export const Card = ({ title, children, ...props }) => (
              <div className="card" {...props}>
                {title && <Text as="h3" size="lg" className="card-title">{title}</Text>}
                <div className="card-body">{children}</div>
              </div>
            );
            """
        ),
        "usage_rules": "Use Card to group related content. Always provide a title for "
        "context. Cards can be nested inside grid layouts.",
        "requirements": "Must have a distinct visual boundary (border or shadow). Title is "
        "optional but recommended.",
    },
    {
        "name": "FormField",
        "tier": "molecule",
        "code": _src(
            """
            import { Input } from "./Input";
            import { Text } from "./Text";

            export const FormField = ({ label, hint, error, ...inputProps }) => (
              <div className="form-field">
                <Input label={label} error={error} {...inputProps} />
                {hint && <Text size="sm" className="form-field-hint">{hint}</Text>}
              </div>
            );
            """
        ),
        "usage_rules": "Use FormField for labeled form inputs with optional hints. Combine "
        "into form layouts.",
        "requirements": "Must show label, optional hint text, and error messages. Must "
        "forward all input props.",
    },
    {
        "name": "Header",
        "tier": "organism",
        "code": _src(
            """
            import { Button } from "./Button";
            import { Icon } from "./Icon";
            import { Text } from "./Text";
            import { SearchBar } from "./SearchBar";
            import { Menu } from "lucide-react";

            export const Header = ({ title, onMenuClick, onSearch }) => (
              <header className="header">
                <Button variant="ghost" onClick={onMenuClick}>
                  <Icon icon={Menu} />
                </Button>
                <Text as="h1" size="lg">{title}</Text>
                <SearchBar onSearch={onSearch} />
              </header>
            );
            """
        ),
        "usage_rules": "Use Header at the top of every page. Contains navigation trigger, "
        "page title, and search. Sticky on scroll.",
        "requirements": "Must include menu button, title, and search. Must be responsive; "
        "search collapses on mobile.",
    },
    {
        "name": "LoginForm",
        "tier": "organism",
        "code": _src(
            """
            import { FormField } from "./FormField";
            import { Button } from "./Button";
            import { Text } from "./Text";
            import { Card } from "./Card";

            export const LoginForm = ({ onSubmit }) => (
              <Card title="Sign In">
                <form onSubmit={onSubmit} className="login-form">
                  <FormField label="Email" type="email" name="email" required />
                  <FormField label="Password" type="password" name="password" required />
                  <Button type="submit" variant="primary">Sign In</Button>
                  <Text size="sm">Forgot your password?</Text>
                </form>
              </Card>
            );
            """
        ),
        "usage_rules": "Use LoginForm on the authentication page. Center it vertically and "
        "horizontally. Show server errors above the submit button.",
        "requirements": "Must validate email format and password length client-side. Must "
        "handle loading/submitting state. Must be accessible.",
    },
]

SAMPLE_TOKEN_LINKS = [
    ("Button", "color.primary.500", "background-color"),
    ("Button", "radius.md", "border-radius"),
    ("Button", "spacing.sm", "padding"),
    ("Text", "font.size.base", "font-size"),
    ("Text", "color.neutral.900", "color"),
    ("Input", "spacing.sm", "padding"),
    ("Input", "radius.md", "border-radius"),
    ("Input", "font.size.base", "font-size"),
    ("Card", "spacing.md", "padding"),
    ("Card", "radius.md", "border-radius"),
    ("Card", "color.neutral.100", "background-color"),
    ("Header", "spacing.lg", "padding"),
    ("Header", "color.neutral.100", "background-color"),
]


# ---------------------------------------------------------------------------
# Seeding
# ---------------------------------------------------------------------------


def seed(kg: DesignKG, *, wipe: bool = False) -> dict:
    """
    Load the sample tokens, components and token links into *kg*.

    Tokens that already exist are skipped; components are re-synced
    (which is a no-op for the change log when nothing differs).

    :param kg: Target catalog.
    :param wipe: Clear the catalog first.
    :return: :meth:`DesignKG.stats` after seeding.
    """
    if wipe:
        kg.clear()

    for name, category, value, description in SAMPLE_TOKENS:
        if kg.store.token(name) is None:
            kg.add_token(name, category, value, description)

    for comp in SAMPLE_COMPONENTS:
        kg.sync_component({**comp, "source": "manual"})

    for component, token, prop in SAMPLE_TOKEN_LINKS:
        kg.link_token(component, token, prop)

    stats = kg.stats()
    logger.info(
        "seeded %d components, %d tokens, %d token links",
        stats["components"],
        stats["tokens"],
        stats["token_usage"],
    )
    return stats


def main() -> None:
    p = argparse.ArgumentParser(description="Load the sample design system into the catalog.")
    add_settings_args(p)
    p.add_argument("--wipe", action="store_true", help="Clear the catalog first")
    args = p.parse_args()

    settings = Settings.from_env().with_args(args)
    configure_logging(settings.log_level)

    with DesignKG.from_settings(settings) as kg:
        stats = seed(kg, wipe=args.wipe)
    print(json.dumps(stats, indent=2))


if __name__ == "__main__":
    main()
