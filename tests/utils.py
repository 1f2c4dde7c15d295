import os

from git import Repo

AZURE_ORIGIN = "https://dev.azure.com/myorg/myproject/_git/myrepo"


def create_repo(gitDir, branch="master"):
    """Create a repository with one commit on ``branch``."""
    os.makedirs(gitDir, exist_ok=True)
    repo = Repo.init(gitDir)
    with repo.config_writer() as writer:
        writer.set_value("user", "name", "Test User")
        writer.set_value("user", "email", "test@example.com")
    filename = "README"
    filepath = os.path.join(gitDir, filename)
    with open(filepath, "w") as f:
        f.write("""just another git repository""")

    repo.index.add([filename])
    repo.index.commit("Initial Commit")
    repo.git.branch("-M", branch)
    return repo


def add_origin(repo, bareDir, origin_url=AZURE_ORIGIN):
    """
    Add an origin remote with ``origin_url`` that git rewrites to a local bare
    repository, so pushes work without network access.
    """
    bare = Repo.init(bareDir, bare=True)
    repo.create_remote("origin", origin_url)
    with repo.config_writer() as writer:
        writer.set_value(f'url "{bare.git_dir}"', "insteadOf", origin_url)
    return bare
