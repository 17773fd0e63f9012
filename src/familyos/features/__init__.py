"""FamilyOS feature packages."""
