"""Provider implementations, one subpackage per wire protocol."""
