# Document resolution: identifier classification, static contexts, bounded web fetch
