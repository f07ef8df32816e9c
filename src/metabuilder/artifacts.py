"""Templates for artifacts created by ``--generate``."""

from __future__ import annotations

from dataclasses import dataclass

from .spdx import SPDX_MARKER

LICENSE = "Apache-2.0"


@dataclass(frozen=True)
class ArtifactKind:
    """How one artifact type is rendered and reported."""

    label: str
    comment: str
    executable: bool = False


ARTIFACT_KINDS: dict[str, ArtifactKind] = {
    "bash": ArtifactKind("Bash script", "#", executable=True),
    "script": ArtifactKind("Bash script", "#", executable=True),
    "python": ArtifactKind("Python module", "#"),
    "java": ArtifactKind("Java class", "//"),
}


def _header(kind: ArtifactKind, name: str, project: str) -> list[str]:
    lines = [
        f"{SPDX_MARKER}: {LICENSE}",
        "",
        "Generated by: Enterprise Meta-Builder",
        f"Project: {project}",
        f"Artifact: {name}",
    ]
    return [f"{kind.comment} {line}".rstrip() for line in lines]


def render_artifact(kind_name: str, name: str, project: str) -> str:
    """Render the source text of a generated artifact.

    Args:
        kind_name: Artifact type, one of ``ARTIFACT_KINDS``
        name: Artifact name
        project: Display name of the owning project

    Returns:
        File content with an SPDX license header

    Raises:
        KeyError: If the artifact type is unknown
    """
    kind = ARTIFACT_KINDS[kind_name]
    header = _header(kind, name, project)

    if kind.executable:
        body = [
            "#!/usr/bin/env bash",
            *header,
            "",
            "set -eEuo pipefail",
            "",
            "main() {",
            f'  echo "Executing {name}"',
            "}",
            "",
            'main "$@"',
        ]
    elif kind_name == "python":
        body = [
            *header,
            f'"""{name}."""',
            "",
            "",
            "def main() -> None:",
            f'    print("Executing {name}")',
            "",
            "",
            'if __name__ == "__main__":',
            "    main()",
        ]
    else:
        class_name = "".join(part.capitalize() for part in name.replace("-", "_").split("_"))
        body = [
            *header,
            f"public class {class_name} {{",
            "    public static void main(String[] args) {",
            f'        System.out.println("Executing {name}");',
            "    }",
            "}",
        ]
    return "\n".join(body) + "\n"
