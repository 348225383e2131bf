"""Project scaffolding from the yoblox template.

The template repository is downloaded as a GitHub codeload archive, so no
Git or Node tooling is required. Only its ``template/`` folder is copied into
the new project.
"""

import logging
import re
import tempfile
import zipfile
from pathlib import Path
from typing import Optional, Union

import httpx

from yoblox_setup.config import Settings
from yoblox_setup.core.context import Context, ContextKey
from yoblox_setup.core.step import CheckResult, StepResult
from yoblox_setup.services import console as ui
from yoblox_setup.services.installer import cleanup_directory, copy_directory, download_file, extract_zip, find_directory
from yoblox_setup.services.network import NetworkProber
from yoblox_setup.services.prompt import Prompter
from yoblox_setup.steps.base import WizardStep

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 50

# Not copied into the new project
TEMPLATE_EXCLUDES = (".git", ".gitignore", "node_modules", ".DS_Store")

_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


def validate_project_name(name: str, parent: Optional[Path] = None) -> Union[bool, str]:
    """Validate a project name.

    Args:
        name: Proposed name
        parent: Directory the project will be created in (defaults to cwd)

    Returns:
        True if valid, otherwise the reason it is not

    Examples:
        >>> validate_project_name("")
        'Project name is required'
        >>> validate_project_name("my game")
        'Project name cannot contain spaces'
        >>> validate_project_name("game!")
        'Project name can only contain letters, numbers, hyphens, and underscores'
    """
    if not name:
        return "Project name is required"
    if " " in name:
        return "Project name cannot contain spaces"
    if not _NAME_PATTERN.match(name):
        return "Project name can only contain letters, numbers, hyphens, and underscores"
    if len(name) > MAX_NAME_LENGTH:
        return f"Project name is too long (max {MAX_NAME_LENGTH} characters)"
    if ((parent or Path.cwd()) / name).exists():
        return f'Directory "{name}" already exists'
    return True


class TemplateError(Exception):
    """The downloaded archive does not have the expected layout."""


class ScaffoldStep(WizardStep):
    name = "scaffold"
    title = "Create Your Project"

    def __init__(
        self,
        prompt: Prompter,
        settings: Optional[Settings] = None,
        network: Optional[NetworkProber] = None,
    ):
        super().__init__(prompt, settings)
        self.network = network

    def check(self, context: Context) -> CheckResult:
        return CheckResult(found=bool(context.get(ContextKey.PROJECT_NAME)), can_skip=True)

    def run(self, context: Context) -> StepResult:
        self.show_header()

        ui.info("Time to create your first Roblox game project!")
        ui.info("We will download the yoblox template from GitHub and set it up for you.")
        ui.newline()

        project_name = self.prompt.input(
            "What do you want to name your project?",
            self.settings.default_project_name,
            validate_project_name,
        )
        project_path = Path.cwd() / project_name

        ui.newline()
        ui.info(f"Creating project: {project_name}")
        ui.newline()

        temp_dir = Path(tempfile.mkdtemp(prefix="yoblox-setup-"))
        try:
            archive = temp_dir / "yoblox.zip"
            ui.info("Downloading yoblox template from GitHub...")
            download_file(self.settings.template_url, archive)
            ui.success("Template downloaded")

            self._create_project(archive, temp_dir / "extracted", project_path)
        except httpx.HTTPError as e:
            logger.debug(f"Template download failed: {e!r}")
            ui.error(f"Failed to download yoblox template from GitHub: {e}")
            if self.network is not None and not self.network.has_internet_connection():
                ui.warning("No internet connection detected. Check your network and try again.")
            return StepResult.retry_if(self.prompt.confirm("Try again?", True))
        except (OSError, ValueError, zipfile.BadZipFile, TemplateError) as e:
            ui.error(f"Failed to set up project: {e}")
            cleanup_directory(project_path)
            return StepResult.retry_if(self.prompt.confirm("Try again?", True))
        finally:
            cleanup_directory(temp_dir)

        ui.success(f'Project "{project_name}" created successfully!')
        ui.info(f"Location: {project_path}")
        ui.newline()
        ui.divider()
        ui.newline()
        self._show_next_steps(project_name)

        return StepResult.ok(
            {
                ContextKey.PROJECT_NAME.value: project_name,
                ContextKey.PROJECT_PATH.value: str(project_path),
            }
        )

    def _create_project(self, archive: Path, extract_dir: Path, project_path: Path) -> None:
        ui.info("Extracting template...")
        extract_zip(archive, extract_dir)

        repo_dir = find_directory(extract_dir, "yoblox-*")
        if repo_dir is None:
            raise TemplateError("Could not find yoblox folder in extracted archive")

        template_dir = repo_dir / "template"
        if not template_dir.is_dir():
            raise TemplateError("Template folder not found inside yoblox repository")

        ui.info("Copying template files...")
        project_path.mkdir(parents=True, exist_ok=True)
        copy_directory(template_dir, project_path, exclude=TEMPLATE_EXCLUDES)
        ui.success("Template files copied")

    def _show_next_steps(self, project_name: str) -> None:
        ui.info("Next steps to get started:")
        ui.bullet_list(
            [
                f"cd {project_name}",
                "code . (to open in VS Code)",
                "rojo serve (in terminal)",
            ]
        )
        ui.newline()
        ui.info("Then in Roblox Studio:")
        ui.bullet_list(
            [
                "Install Rojo plugin from plugin marketplace",
                'Click "Connect" in Rojo plugin',
                f"Connect to localhost:{self.settings.preferred_port}",
            ]
        )
        ui.newline()
