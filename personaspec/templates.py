"""Prebuilt persona templates.

Each template is a fixed base definition. Keyword overrides replace fields
wholesale (lists are not merged) and the result is validated again:

    >>> from personaspec import templates
    >>> templates.first_time_visitor(name="Jordan", goals=["Find pricing"]).goals
    ('Find pricing',)
"""

from __future__ import annotations

from typing import Any

from .errors import ValidationError
from .personas import PersonaDefinition, persona_from_mapping


TEMPLATES: dict[str, dict[str, Any]] = {
    "first_time_visitor": {
        "name": "Alex",
        "role": "First-Time Visitor",
        "background": "New to the site with no prior context. Found this via search or social media.",
        "goals": [
            "Understand what this site/product does within 10 seconds",
            "Find how to get started or sign up",
            "Locate help, documentation, or support",
        ],
        "behaviors": [
            "Skims headings before reading full content",
            "Looks for familiar UI patterns",
            "Quick to leave if confused or overwhelmed",
            "Scrolls to get a sense of page length",
        ],
    },
    "power_user": {
        "name": "Sam",
        "role": "Power User",
        "background": "Has used similar tools extensively. Values efficiency and keyboard shortcuts.",
        "goals": [
            "Complete tasks as efficiently as possible",
            "Use keyboard navigation when available",
            "Access advanced features without hunting",
            "Customize the experience to their workflow",
        ],
        "behaviors": [
            "Uses search heavily instead of browsing",
            "Memorizes and uses keyboard shortcuts",
            "Expects instant feedback on actions",
            "Gets frustrated by unnecessary confirmations",
        ],
    },
    "accessibility_auditor": {
        "name": "Jordan",
        "role": "Accessibility Auditor",
        "background": "Testing for WCAG 2.1 AA compliance. Uses keyboard navigation and screen readers.",
        "goals": [
            "Navigate the entire site using only keyboard",
            "Verify screen reader announces content correctly",
            "Check color contrast meets WCAG standards",
            "Ensure all interactive elements have focus states",
        ],
        "behaviors": [
            "Uses Tab key exclusively for navigation",
            "Tests at 200% zoom level",
            "Checks heading hierarchy (H1, H2, H3)",
            "Verifies all images have meaningful alt text",
            "Tests with browser extensions like axe or WAVE",
        ],
    },
    "design_reviewer": {
        "name": "Casey",
        "role": "UI/UX Designer",
        "background": "Senior designer with an eye for detail. Reviews interfaces for consistency and polish.",
        "goals": [
            "Verify visual hierarchy guides users correctly",
            "Check spacing and alignment consistency",
            "Ensure responsive design works at all breakpoints",
            "Identify any jarring transitions or animations",
        ],
        "behaviors": [
            "Resizes browser to test responsive breakpoints",
            "Inspects spacing with browser dev tools",
            "Notices subtle color and typography inconsistencies",
            "Tests hover states and micro-interactions",
        ],
    },
    "skeptical_evaluator": {
        "name": "Morgan",
        "role": "Skeptical Evaluator",
        "background": "Has been burned by overpromising products before. Needs to see proof before committing.",
        "goals": [
            "Find evidence that this actually works",
            "Understand pricing before investing time",
            "Read real user testimonials or case studies",
            "Find limitations or downsides (red flags if hidden)",
        ],
        "behaviors": [
            "Scrolls past marketing to find substance",
            "Looks for pricing page early",
            "Searches for reviews and comparisons externally",
            "Tests claims by trying the product immediately",
        ],
    },
    "support_seeker": {
        "name": "Riley",
        "role": "Support Seeker",
        "background": "Encountered a problem and needs help. May be frustrated or confused.",
        "goals": [
            "Find contact information or support chat quickly",
            "Search documentation for their specific issue",
            "Understand error messages and how to resolve them",
            "Get a response time estimate for support",
        ],
        "behaviors": [
            "Looks for help/support links in header or footer",
            "Uses search with error message text",
            "Prefers self-service over waiting for support",
            "Gets more frustrated if help is hard to find",
        ],
    },
    "mobile_user": {
        "name": "Taylor",
        "role": "Mobile-First User",
        "background": (
            "Primarily uses phone for everything. Limited patience for pinch-zooming or horizontal scrolling."
        ),
        "goals": [
            "Complete core tasks on a phone screen",
            "Tap targets should be large enough",
            "Content should be readable without zooming",
            "Forms should work with mobile keyboards",
        ],
        "behaviors": [
            "Holds phone one-handed, uses thumb",
            "Expects tap targets to be 44px minimum",
            "Abandons if horizontal scrolling required",
            "Uses autofill for forms whenever possible",
        ],
    },
}


def names() -> list[str]:
    return list(TEMPLATES)


def get(template: str, **overrides: Any) -> PersonaDefinition:
    base = TEMPLATES.get(template)
    if base is None:
        raise ValidationError(
            f"Unknown persona template: {template}",
            hint=f"Available templates: {', '.join(TEMPLATES)}",
        )
    merged = dict(base)
    merged.update(overrides)
    return persona_from_mapping(merged)


def first_time_visitor(**overrides: Any) -> PersonaDefinition:
    """A new user with no prior context, evaluating if this is worth their time."""
    return get("first_time_visitor", **overrides)


def power_user(**overrides: Any) -> PersonaDefinition:
    """An experienced user who knows what they want and values efficiency."""
    return get("power_user", **overrides)


def accessibility_auditor(**overrides: Any) -> PersonaDefinition:
    """Someone testing for WCAG compliance and assistive technology support."""
    return get("accessibility_auditor", **overrides)


def design_reviewer(**overrides: Any) -> PersonaDefinition:
    return get("design_reviewer", **overrides)


def skeptical_evaluator(**overrides: Any) -> PersonaDefinition:
    return get("skeptical_evaluator", **overrides)


def support_seeker(**overrides: Any) -> PersonaDefinition:
    return get("support_seeker", **overrides)


def mobile_user(**overrides: Any) -> PersonaDefinition:
    """A mobile-first user with limited patience for desktop-optimized UIs."""
    return get("mobile_user", **overrides)
