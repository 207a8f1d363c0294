# Core decision engines package
