from pydantic import BaseModel, ConfigDict, Field, computed_field


class Repository(BaseModel):
    """An ECR repository, as reported by DescribeRepositories."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Repository name, e.g. 'team/service'")
    registry_id: str | None = Field(default=None, description="AWS account ID owning the registry")
    uri: str | None = Field(default=None, description="Repository URI used for docker pull")

    @classmethod
    def from_api(cls, data: dict) -> "Repository":
        """Build from a DescribeRepositories `repositories` entry."""
        return cls(
            name=data["repositoryName"],
            registry_id=data.get("registryId"),
            uri=data.get("repositoryUri"),
        )


class Image(BaseModel):
    """An image inside a repository, identified by digest and/or tag.

    ListImages returns one entry per tag, so a digest carrying several tags
    appears several times. Untagged images only carry a digest.
    """

    model_config = ConfigDict(frozen=True)

    digest: str | None = Field(default=None, description="Manifest digest, 'sha256:...'")
    tag: str | None = Field(default=None, description="Image tag, absent for untagged images")

    @classmethod
    def from_api(cls, data: dict) -> "Image":
        """Build from a ListImages `imageIds` entry."""
        return cls(digest=data.get("imageDigest"), tag=data.get("imageTag"))

    @computed_field
    @property
    def is_identifiable(self) -> bool:
        """Whether the image can be addressed in a StartImageScan call."""
        return bool(self.digest or self.tag)

    def image_id(self) -> dict[str, str]:
        """Render the `imageId` structure with only the known keys."""
        image_id: dict[str, str] = {}
        if self.digest:
            image_id["imageDigest"] = self.digest
        if self.tag:
            image_id["imageTag"] = self.tag
        return image_id

    def reference(self, repository: str) -> str:
        """Render a docker-style reference, e.g. 'team/svc:v1@sha256:...'."""
        ref = repository
        if self.tag:
            ref += f":{self.tag}"
        if self.digest:
            ref += f"@{self.digest}"
        return ref

    def log_fields(self) -> dict[str, str | None]:
        return {"digest": self.digest, "tag": self.tag}
