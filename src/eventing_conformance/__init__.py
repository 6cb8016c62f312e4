"""Channel/subscription delivery conformance testing framework."""

__version__ = "0.1.0"

# API group shared by every channel kind and by the subscription contract
MESSAGING_GROUP = "messaging.conformance.dev"

# Subscription contract revisions, oldest first
SUBSCRIPTION_API_VERSIONS = ["v1alpha1", "v1beta1"]

# Channel kinds shipped with the local reference cluster
SUPPORTED_CHANNEL_KINDS = ["InMemoryChannel", "CborLogChannel"]
