# Copyright (c) 2020 Adam Souzis
# SPDX-License-Identifier: MIT
"""
Git remote helpers: resolve remote urls for Azure DevOps, Visual Studio Online
and GitHub into canonical repository urls and pull request links, and run the
create-branch / commit / push / pull request link workflow.

All git operations shell out to the ``git`` executable through GitPython.
"""
import os
import os.path
from contextlib import contextmanager
from typing import Iterator, Mapping, NamedTuple, Optional
from urllib.parse import unquote, urlparse

import git
import git.exc

from .errors import ErrorCode, build_error
from .logs import getLogger
from .util import RingopsError

logger = getLogger("ringops")

UNSUPPORTED_PROVIDER_MESSAGE = (
    "Could not determine origin repository, or it is not a supported provider. "
    "Please check for the newly pushed branch and open a PR manually."
)


class GitUrl(NamedTuple):
    source: str
    protocol: str
    resource: str
    user: str
    token: str
    pathname: str
    organization: str
    owner: str
    name: str


def normalize_git_url(url: str) -> str:
    if "://" not in url:  # not an absolute URL, convert some common patterns
        if url.startswith("/"):
            # abspath also normalizes the path
            return "file://" + os.path.abspath(url)
        elif url.startswith("~"):
            return "file://" + os.path.abspath(os.path.expanduser(url))
        elif url.startswith("file:"):
            # git doesn't like relative file URLs
            return "file://" + os.path.abspath(os.path.expanduser(url[5:]))
        elif "@" in url:  # scp style used by git: user@server:project.git
            # convert to ssh://user@server/project.git
            url = "ssh://" + url.replace(":", "/", 1)
        elif ":" in url and "/" not in url.partition(":")[0]:
            # scp style without a user: server:project.git (e.g. an ssh config alias)
            url = "ssh://" + url.replace(":", "/", 1)
    return url


def _strip_git_suffix(name: str) -> str:
    return name[:-4] if name.endswith(".git") else name


def _split_azure_path(resource: str, segments):
    # returns (organization, owner, name)
    if len(segments) >= 4 and segments[0] == "v3":
        # ssh: v3/{org}/{project}/{repo}
        return segments[1], segments[2], _strip_git_suffix(segments[3])
    if "_git" in segments:
        index = segments.index("_git")
        name = _strip_git_suffix(segments[index + 1]) if len(segments) > index + 1 else ""
        before = [s for s in segments[:index] if s != "DefaultCollection"]
        if "visualstudio.com" in resource:
            # https://{org}.visualstudio.com/{project}/_git/{repo}
            organization = resource.split(".")[0]
            owner = before[-1] if before else name
        else:
            # https://dev.azure.com/{org}/{project}/_git/{repo}
            organization = before[0] if before else ""
            owner = before[1] if len(before) > 1 else name
        return organization, owner, name
    return None


def parse_git_url(url: str) -> GitUrl:
    """
    Split a git remote url into its parts.

    Accepts ``https://``, ``ssh://`` and scp style (``git@host:path``) remotes.
    For Azure DevOps and Visual Studio Online remotes ``organization`` is the
    Azure DevOps organization and ``owner`` is the project; for other hosts both
    are the path leading up to the repository name.
    """
    url = url.strip()
    parts = urlparse(normalize_git_url(url))
    protocol = (parts.scheme or "file").lower()
    resource = parts.hostname or ""
    user = unquote(parts.username or "")
    token = unquote(parts.password or "")
    pathname = parts.path
    segments = [s for s in pathname.split("/") if s]
    name = _strip_git_suffix(segments[-1]) if segments else ""
    owner = "/".join(segments[:-1])
    organization = owner
    if "dev.azure.com" in resource or "visualstudio.com" in resource:
        azure = _split_azure_path(resource, segments)
        if azure:
            organization, owner, name = azure
    return GitUrl(
        url, protocol, resource, user, token, pathname, organization, owner, name
    )


def safe_git_url_for_logging(repo_url: str) -> str:
    """
    Returns a version of the url without any user or access token, for logging.
    """
    parsed = parse_git_url(repo_url)
    if parsed.user or parsed.token:
        return f"{parsed.protocol}://{parsed.resource}{parsed.pathname}"
    return repo_url


def _git(repo_dir: Optional[str] = None) -> git.Git:
    return git.Git(os.path.abspath(repo_dir or "."))


def get_current_branch(repo_dir: Optional[str] = None) -> str:
    try:
        branch = _git(repo_dir).branch("--show-current")
    except git.exc.GitCommandError as err:
        logger.error("%s", err)
        branch = ""
    if not branch:
        raise RingopsError(
            "Unable to parse current branch from git client. "
            "Ensure 'git branch --show-current' returns a proper response"
        )
    return branch


def checkout_branch(
    branch_name: str, create_new_branch: bool, repo_dir: Optional[str] = None
) -> None:
    try:
        if create_new_branch:
            _git(repo_dir).checkout("-b", branch_name)
        else:
            _git(repo_dir).checkout(branch_name)
    except git.exc.GitCommandError:
        raise RingopsError(f"Unable to checkout git branch {branch_name}", True)
    logger.verbose("checked out branch %s", branch_name)


def delete_branch(branch_name: str, repo_dir: Optional[str] = None) -> None:
    try:
        _git(repo_dir).branch("-D", branch_name)
    except git.exc.GitCommandError:
        raise RingopsError(f"Unable to delete git branch {branch_name}", True)
    logger.verbose("deleted branch %s", branch_name)


def commit_path(
    branch_name: str,
    *pathspecs: str,
    repo_dir: Optional[str] = None,
    message: Optional[str] = None,
) -> None:
    """
    Add the given pathspecs (see https://git-scm.com/docs/git-add#Documentation/git-add.txt-ltpathspecgt)
    and commit them.
    """
    gitcmd = _git(repo_dir)
    try:
        gitcmd.add(*pathspecs)
        gitcmd.commit("-m", message or f"Adding new service: {branch_name}")
    except git.exc.GitCommandError:
        raise RingopsError(
            f"Unable to commit changes in {','.join(pathspecs)} to git branch {branch_name}",
            True,
        )


def push_branch(branch_name: str, repo_dir: Optional[str] = None) -> None:
    try:
        _git(repo_dir).push("-u", "origin", branch_name)
    except git.exc.GitCommandError:
        raise RingopsError(f"Unable to push git branch {branch_name}", True)


def get_origin_url(repo_path: Optional[str] = None) -> str:
    try:
        origin_url = _git(repo_path).config("--get", "remote.origin.url")
    except git.exc.GitCommandError:
        raise RingopsError("Unable to get git origin URL", True)
    logger.debug("Got git origin url %s", safe_git_url_for_logging(origin_url))
    return origin_url


def get_azdo_origin_url() -> str:
    # set by Azure Pipelines
    origin_url = os.getenv("APP_REPO_URL")
    if not origin_url:
        raise RingopsError(
            "Unable to get azdo origin URL: Not running in a pipeline - no AzDO variables."
        )
    logger.debug("Got azdo git origin url %s", safe_git_url_for_logging(origin_url))
    return origin_url


def try_get_git_origin(repo_path: Optional[str] = None) -> str:
    """
    Returns the origin url from the Azure Pipelines environment, falling back to
    the origin remote of the git repository at ``repo_path``.
    """
    try:
        return get_azdo_origin_url()
    except RingopsError:
        logger.warning(
            "Could not get Git Origin for Azure DevOps - are you running 'ringops' _not_ in a pipeline?"
        )
        return get_origin_url(repo_path)


def get_repository_name(origin_url: str) -> str:
    parsed = parse_git_url(origin_url)
    resource = parsed.resource
    if "dev.azure.com" in resource:
        logger.debug("azure devops repo found.")
        return parsed.name
    elif "visualstudio.com" in resource:
        logger.debug("visualstudio.com repo found")
        return parsed.name
    elif resource == "github.com":
        logger.debug("github repo found.")
        return parsed.name
    elif not resource.startswith("http"):
        raise build_error(ErrorCode.VALIDATION_ERR, "git-err-invalid-repository-url")
    else:
        raise build_error(ErrorCode.VALIDATION_ERR, "git-err-validating-remote-git")


def _visualstudio_repository_url(parsed: GitUrl) -> str:
    protocol = parsed.protocol.lower()
    if protocol == "ssh":
        return f"https://{parsed.organization}.visualstudio.com/{parsed.owner}/_git/{parsed.name}"
    elif protocol == "https":
        return f"https://{parsed.resource}/{parsed.owner}/_git/{parsed.name}"
    raise RingopsError(
        f"Invalid protocol found in git remote '{safe_git_url_for_logging(parsed.source)}'. "
        f"Expected one of 'ssh' or 'https' found '{parsed.protocol}'"
    )


def get_repository_url(origin_url: str) -> str:
    """
    Returns the canonical web url of the repository. Only Azure DevOps,
    Visual Studio Online and GitHub remotes are supported.
    """
    parsed = parse_git_url(origin_url)
    resource = parsed.resource
    if "dev.azure.com" in resource:
        logger.debug("azure devops repo found.")
        return f"https://dev.azure.com/{parsed.organization}/{parsed.owner}/_git/{parsed.name}"
    elif "visualstudio.com" in resource:
        logger.debug("visualstudio.com repo found")
        return _visualstudio_repository_url(parsed)
    elif resource == "github.com":
        logger.debug("github repo found.")
        return f"https://github.com/{parsed.organization}/{parsed.name}"
    raise build_error(ErrorCode.VALIDATION_ERR, "git-err-unsupported-remote")


def get_pull_request_link(base_branch: str, new_branch: str, origin_url: str) -> str:
    """
    Returns a link to create a pull request merging ``new_branch`` into ``base_branch``.
    If the remote isn't a supported provider a message asking the user to open the
    pull request manually is returned instead.
    """
    parsed = parse_git_url(origin_url)
    resource = parsed.resource
    azure_query = f"pullrequestcreate?sourceRef={new_branch}&targetRef={base_branch}"
    if "dev.azure.com" in resource:
        logger.debug("azure devops repo found.")
        return f"https://dev.azure.com/{parsed.organization}/{parsed.owner}/_git/{parsed.name}/{azure_query}"
    elif "visualstudio.com" in resource:
        logger.debug("visualstudio.com repo found")
        return f"{_visualstudio_repository_url(parsed)}/{azure_query}"
    elif resource == "github.com":
        logger.debug("github repo found.")
        return f"https://github.com/{parsed.organization}/{parsed.name}/compare/{base_branch}...{new_branch}?expand=1"
    logger.error(
        "Could not determine origin repository, or it is not a supported type."
    )
    return UNSUPPORTED_PROVIDER_MESSAGE


@contextmanager
def _remediation(message: str) -> Iterator[None]:
    try:
        yield
    except RingopsError as err:
        raise RingopsError(f"{message} {err}") from err


def _rollback(
    original_branch: str, new_branch: str, committed: bool, repo_dir: Optional[str]
) -> None:
    try:
        checkout_branch(original_branch, False, repo_dir)
    except RingopsError as err:
        logger.error(
            "Could not return to branch %s, clean up will need to be done manually: %s",
            original_branch,
            err,
        )
        return
    if committed:
        logger.warning(
            "Changes were committed to local branch %s but not pushed. Push or delete it manually.",
            new_branch,
        )
        return
    try:
        delete_branch(new_branch, repo_dir)
    except RingopsError as err:
        logger.error(
            "Could not delete branch %s, clean up will need to be done manually: %s",
            new_branch,
            err,
        )


def checkout_commit_push_create_pr_link(
    new_branch_name: str,
    *pathspecs: str,
    repo_dir: Optional[str] = None,
    message: Optional[str] = None,
) -> str:
    """
    Creates a new branch named ``new_branch_name``, commits ``pathspecs`` to it,
    pushes it, and logs a link to create a pull request that merges it into the
    current branch. Afterwards the original branch is checked out again and the
    new local branch is deleted.

    If committing or pushing fails the original branch is restored.

    Returns:
        str: the pull request link
    """
    current_branch = ""
    created = committed = pushed = False
    try:
        with _remediation(
            "Cannot fetch current branch. Changes will have to be manually committed."
        ):
            current_branch = get_current_branch(repo_dir)
        with _remediation(
            f"Cannot create and checkout new branch {new_branch_name}. Changes will have to be manually committed."
        ):
            checkout_branch(new_branch_name, True, repo_dir)
        created = True
        with _remediation(
            f"Cannot commit changes in {', '.join(pathspecs)} to branch {new_branch_name}. Changes will have to be manually committed."
        ):
            commit_path(new_branch_name, *pathspecs, repo_dir=repo_dir, message=message)
        committed = True
        with _remediation(
            f"Cannot push branch {new_branch_name}. Changes will have to be manually committed."
        ):
            push_branch(new_branch_name, repo_dir)
        pushed = True

        origin_url = get_origin_url(repo_dir)
        with _remediation(
            "Could not create link for Pull Request. It will need to be done manually."
        ):
            pull_request_link = get_pull_request_link(
                current_branch, new_branch_name, origin_url
            )
        logger.info("Link to create PR: %s", pull_request_link)

        # cleanup
        with _remediation(
            f"Cannot checkout original branch {current_branch}. Clean up will need to be done manually."
        ):
            checkout_branch(current_branch, False, repo_dir)
        with _remediation(
            f"Cannot delete new branch {new_branch_name}. Cleanup will need to be done manually."
        ):
            delete_branch(new_branch_name, repo_dir)
        return pull_request_link
    except RingopsError as err:
        if created and not pushed:
            _rollback(current_branch, new_branch_name, committed, repo_dir)
        raise build_error(
            ErrorCode.GIT_OPS_ERR, "git-checkout-commit-push-create-PR-link", err
        )


def validate_repo_url(opts: Mapping, git_origin_url: str) -> str:
    """
    Returns ``repo_url`` from the command options, otherwise the repository
    url derived from the git origin url.
    """
    return opts.get("repo_url") or get_repository_url(git_origin_url)


def is_github_url(url: str) -> bool:
    hostname = urlparse(url).hostname
    return hostname in ("www.github.com", "github.com")
