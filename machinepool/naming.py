from pydantic import BaseModel, Field


class NamingPolicy(BaseModel):
    """Name templates of the worker resources the installer created for a cluster.

    Generated node groups reference these by name; nothing here creates them.
    """

    iam_profile_template: str = Field(default="{infra_id}-worker-profile")
    security_group_template: str = Field(default="{infra_id}-worker-sg")
    private_subnet_template: str = Field(default="{infra_id}-private-{zone}")

    def iam_profile(self, infra_id: str) -> str:
        return self.iam_profile_template.format(infra_id=infra_id)

    def security_group(self, infra_id: str) -> str:
        return self.security_group_template.format(infra_id=infra_id)

    def private_subnet(self, infra_id: str, zone: str) -> str:
        return self.private_subnet_template.format(infra_id=infra_id, zone=zone)
