"""Node group generation for AWS machine pools."""
