"""Repository identity and working copy data models."""

from pydantic import BaseModel, ConfigDict


SHORT_COMMIT_LENGTH = 7


class RepositoryIdentity(BaseModel):
    """Owner/name pair of the remote repository a workspace points at."""

    model_config = ConfigDict(frozen=True)

    owner: str = ""
    name: str = ""

    @property
    def is_resolved(self) -> bool:
        return bool(self.owner) and bool(self.name)

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.name}"


class VCSState(BaseModel):
    """Checked-out branch and full commit hash of a working copy."""

    model_config = ConfigDict(frozen=True)

    branch: str
    commit_id: str

    @property
    def short_commit_id(self) -> str:
        """Display-only abbreviation; never compare with it."""
        return self.commit_id[:SHORT_COMMIT_LENGTH]
