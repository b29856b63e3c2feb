# DID resolution: method drivers, registry, cache and override resolver
