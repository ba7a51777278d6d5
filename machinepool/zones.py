class ZoneResolver:
    """Lists the availability zones of a region through the EC2 discovery client."""

    def __init__(self, ec2_client):
        self.ec2_client = ec2_client

    def list_zones(self, region: str) -> list[str]:
        """Return zone names for ``region`` in the order EC2 reports them.

        An empty list is returned as-is; callers decide that zero zones is an error.
        """
        return [zone.zone_name for zone in self.ec2_client.describe_availability_zones(region)]
